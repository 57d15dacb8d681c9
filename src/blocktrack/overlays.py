"""Text overlay patches for the preview surface.

Text blocks can be anchored to a 3x3 grid (top-left through bottom-right)
instead of explicit coordinates. The text is drawn on a semi-transparent
dark rounded box and alpha-blended onto the surface, with optional
rotation (0, 90, -90 degrees).
"""

import numpy as np
from PIL import Image, ImageDraw

from .common import load_font


# ── Constants ────────────────────────────────────────────────────

OVERLAY_MARGIN_FRAC = 0.03       # margin from edges as fraction of surface dimension
OVERLAY_BG_ALPHA = 153           # ~60% opacity (0.6 * 255)
OVERLAY_PADDING_X = 12           # horizontal padding inside the overlay box
OVERLAY_PADDING_Y = 6            # vertical padding inside the overlay box
OVERLAY_BORDER_RADIUS = 6        # rounded corner radius

VALID_OVERLAY_POSITIONS = {
    "top-left", "top-center", "top-right",
    "middle-left", "middle-center", "middle-right",
    "bottom-left", "bottom-center", "bottom-right",
}

VALID_ROTATIONS = {0, 90, -90}


# ── Position computation ─────────────────────────────────────────


def compute_overlay_position(
    position: str,
    patch_w: int,
    patch_h: int,
    frame_w: int,
    frame_h: int,
) -> tuple[int, int]:
    """Compute (x, y) for an overlay patch on a 3x3 grid.

    Margin is OVERLAY_MARGIN_FRAC of the surface dimension from each edge.

    Raises:
        ValueError: Unknown grid position.
    """
    if position not in VALID_OVERLAY_POSITIONS:
        raise ValueError(
            f"Invalid overlay position '{position}'. "
            f"Valid: {sorted(VALID_OVERLAY_POSITIONS)}"
        )
    margin_x = int(frame_w * OVERLAY_MARGIN_FRAC)
    margin_y = int(frame_h * OVERLAY_MARGIN_FRAC)

    vert, horiz = position.split("-", 1)
    if horiz == "left":
        x = margin_x
    elif horiz == "right":
        x = frame_w - margin_x - patch_w
    else:  # center
        x = (frame_w - patch_w) // 2

    if vert == "top":
        y = margin_y
    elif vert == "bottom":
        y = frame_h - margin_y - patch_h
    else:  # middle
        y = (frame_h - patch_h) // 2

    return x, y


# ── Patch rendering ──────────────────────────────────────────────


def render_overlay_patch(
    text: str,
    font_size: int,
    color: tuple[int, int, int],
    rotation: int = 0,
) -> np.ndarray:
    """Render overlay text on a semi-transparent dark background.

    Returns:
        numpy array of shape (h, w, 4), dtype uint8 (RGBA).
    """
    if rotation not in VALID_ROTATIONS:
        raise ValueError(
            f"Invalid rotation {rotation}. Valid: {sorted(VALID_ROTATIONS)}"
        )
    font = load_font(font_size)

    draw_tmp = ImageDraw.Draw(Image.new("RGBA", (1, 1)))
    bbox = draw_tmp.textbbox((0, 0), text, font=font)
    patch_w = (bbox[2] - bbox[0]) + 2 * OVERLAY_PADDING_X
    patch_h = (bbox[3] - bbox[1]) + 2 * OVERLAY_PADDING_Y

    img = Image.new("RGBA", (patch_w, patch_h), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)
    draw.rounded_rectangle(
        [(0, 0), (patch_w - 1, patch_h - 1)],
        radius=OVERLAY_BORDER_RADIUS,
        fill=(0, 0, 0, OVERLAY_BG_ALPHA),
    )
    draw.text((OVERLAY_PADDING_X, OVERLAY_PADDING_Y), text, fill=(*color, 255), font=font)

    if rotation != 0:
        # Pillow rotates counter-clockwise; rotation here is clockwise.
        img = img.rotate(-rotation, expand=True, resample=Image.BICUBIC)

    return np.array(img)


# ── Surface-level application ────────────────────────────────────


def apply_overlay(
    image: Image.Image,
    text: str,
    position: str,
    color: tuple[int, int, int],
    font_size: int,
    rotation: int = 0,
) -> None:
    """Alpha-blend one overlay patch onto an RGB image in place."""
    frame = np.array(image)
    frame_h, frame_w = frame.shape[:2]

    patch = render_overlay_patch(text, font_size, color, rotation=rotation)
    # Patches larger than the surface are cropped.
    patch = patch[:frame_h, :frame_w]
    patch_h, patch_w = patch.shape[:2]

    x, y = compute_overlay_position(position, patch_w, patch_h, frame_w, frame_h)
    x = max(0, min(x, frame_w - patch_w))
    y = max(0, min(y, frame_h - patch_h))

    alpha = patch[:, :, 3:4].astype(np.float32) / 255.0
    rgb = patch[:, :, :3].astype(np.float32)
    dest = frame[y:y + patch_h, x:x + patch_w].astype(np.float32)
    frame[y:y + patch_h, x:x + patch_w] = (dest * (1 - alpha) + rgb * alpha).astype(np.uint8)

    image.paste(Image.fromarray(frame))
