"""blocktrack.common — shared utilities for the timeline engine.

Contains: color parsing, path variable resolution, font loading,
text rendering, and timecode formatting.
"""

import re
from pathlib import Path

from PIL import Image, ImageDraw, ImageFont


# ── Font paths ─────────────────────────────────────────────────────
# Inter preferred for preview text, DejaVu Sans as fallback.

FONT_PATHS = [
    Path.home() / ".local/share/fonts/Inter.ttc",
    Path("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"),
]


# ── Color utilities ────────────────────────────────────────────────

def parse_hex_color(hex_str: str) -> tuple[int, int, int]:
    """Convert '#RRGGBB' or 'RRGGBB' string to (R, G, B) tuple."""
    hex_str = hex_str.lstrip("#")
    if len(hex_str) != 6:
        raise ValueError(f"Invalid hex color: '#{hex_str}'")
    return (int(hex_str[0:2], 16), int(hex_str[2:4], 16), int(hex_str[4:6], 16))


def resolve_color(
    value, palette: dict[str, tuple[int, int, int]],
) -> tuple[int, int, int]:
    """Resolve a color reference — palette key name, inline '#RRGGBB' or RGB list.

    Palette keys are tried first. If the value starts with '#' or is 6 hex
    chars, it's parsed as inline hex. Otherwise raises ValueError.
    """
    if isinstance(value, (list, tuple)) and len(value) == 3:
        return tuple(int(c) for c in value)
    if not isinstance(value, str):
        raise ValueError(f"Unknown color: {value!r}")
    if value in palette:
        return palette[value]
    if value.startswith("#") or (
        len(value) == 6
        and all(c in "0123456789abcdefABCDEF" for c in value)
    ):
        return parse_hex_color(value)
    raise ValueError(
        f"Unknown color: '{value}'. Not in palette and not a hex value."
    )


# ── Path utilities ─────────────────────────────────────────────────

def resolve_path_vars(text: str, paths: dict[str, str]) -> str:
    """Replace ${name} variables in a string using the paths dict."""
    def _replace(match):
        key = match.group(1)
        if key not in paths:
            raise ValueError(f"Unknown path variable: ${{{key}}}")
        return paths[key]
    return re.sub(r"\$\{(\w+)\}", _replace, text)


# ── Font loading ───────────────────────────────────────────────────

def load_font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Load Inter (or fallback) at the given size.

    Inter.ttc is a font collection. Index 0 = Regular.
    """
    for font_path in FONT_PATHS:
        if font_path.exists():
            try:
                return ImageFont.truetype(str(font_path), size=size, index=0)
            except (OSError, IndexError):
                continue
    # Last resort: Pillow default bitmap font.
    return ImageFont.load_default()


# ── Text rendering ─────────────────────────────────────────────────

def render_text_on_image(
    img: Image.Image,
    text: str,
    position: tuple[int, int],
    font: ImageFont.FreeTypeFont,
    color: tuple[int, int, int],
    max_width: int | None = None,
) -> int:
    """Draw text on a Pillow image and return the text height.

    If max_width is set and text exceeds it, the text is truncated
    with an ellipsis so it fits within the specified pixel width.
    """
    draw = ImageDraw.Draw(img)

    if max_width:
        bbox = draw.textbbox((0, 0), text, font=font)
        while (bbox[2] - bbox[0]) > max_width and len(text) > 5:
            text = text[:-4] + "..."
            bbox = draw.textbbox((0, 0), text, font=font)

    draw.text(position, text, fill=color, font=font)
    bbox = draw.textbbox((0, 0), text, font=font)
    return bbox[3] - bbox[1]


# ── Time formatting ────────────────────────────────────────────────

def format_timecode(ms: float) -> str:
    """Format a millisecond position as HH:MM:SS.mmm for time displays."""
    total = int(max(0, ms))
    hours = total // 3_600_000
    minutes = (total // 60_000) % 60
    seconds = (total // 1000) % 60
    remainder = total % 1000
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}.{remainder:03d}"
