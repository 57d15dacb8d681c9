"""Built-in block renderers for the preview surface.

Every renderer shares the signature (surface, parameters) -> None and
draws into `surface.image` in place. The frame pipeline picks one per
block: the block's `template` if set, otherwise the default for its kind.

Parameter conventions (all optional):
  - x, y: position as a percentage of the surface (default 50, 50).
  - color: hex string, palette key, or [r, g, b].
  - text: textString, fontSize; or position (3x3 grid) + rotation for
    an overlay patch.
  - shape: size (px, default 40), intensity (scale, default 1.0).
  - fill: color only.
"""

from PIL import ImageDraw

from .blocks import BlockKind
from .common import load_font, render_text_on_image, resolve_color
from .overlays import apply_overlay


DEFAULT_TEXT = "Hello from blocktrack"
DEFAULT_FONT_SIZE = 14
DEFAULT_SHAPE_SIZE = 40


def _point(surface, parameters: dict) -> tuple[int, int]:
    """Percentage x/y parameters -> pixel coordinates on the surface."""
    w, h = surface.image.size
    x = float(parameters.get("x", 50)) / 100.0 * w
    y = float(parameters.get("y", 50)) / 100.0 * h
    return int(x), int(y)


def _color(surface, parameters: dict, default: str) -> tuple[int, int, int]:
    return resolve_color(parameters.get("color", default), surface.palette)


# ── Renderers ────────────────────────────────────────────────────


def render_text(surface, parameters: dict) -> None:
    """Draw textString at x/y, or as a grid-anchored overlay if `position` is set."""
    text = str(parameters.get("textString", DEFAULT_TEXT))
    font_size = int(parameters.get("fontSize", DEFAULT_FONT_SIZE))
    color = _color(surface, parameters, "#000000")

    position = parameters.get("position")
    if position:
        apply_overlay(
            surface.image, text, position, color, font_size,
            rotation=int(parameters.get("rotation", 0)),
        )
        return

    render_text_on_image(
        surface.image, text, _point(surface, parameters), load_font(font_size), color,
        max_width=surface.image.size[0],
    )


def render_shape(surface, parameters: dict) -> None:
    """Draw a filled circle standing in for an animated figure."""
    cx, cy = _point(surface, parameters)
    size = float(parameters.get("size", DEFAULT_SHAPE_SIZE))
    radius = max(1, int(size * float(parameters.get("intensity", 1.0)) / 2))
    color = _color(surface, parameters, "#444444")
    draw = ImageDraw.Draw(surface.image)
    draw.ellipse([cx - radius, cy - radius, cx + radius, cy + radius], fill=color)


def render_fill(surface, parameters: dict) -> None:
    """Paint the whole surface one color."""
    color = _color(surface, parameters, "#FFFFFF")
    surface.image.paste(color, (0, 0, *surface.image.size))


def render_sound(surface, parameters: dict) -> None:
    """Sounds have no visual effect on the preview."""


DEFAULT_RENDERERS = {
    "text": render_text,
    "shape": render_shape,
    "fill": render_fill,
    "sound": render_sound,
}

KIND_TEMPLATES = {
    BlockKind.TEXT: "text",
    BlockKind.ANIMATION: "shape",
    BlockKind.STATIC: "fill",
    BlockKind.SOUND: "sound",
}
