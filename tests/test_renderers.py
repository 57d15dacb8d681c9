"""Tests for the built-in preview renderers."""

import numpy as np
import pytest

from blocktrack.frames import PreviewSurface
from blocktrack.renderers import (
    DEFAULT_RENDERERS,
    render_fill,
    render_shape,
    render_sound,
    render_text,
)


def _surface(**kwargs):
    return PreviewSurface(resolution=(200, 100), background=(255, 255, 255), **kwargs)


def _changed(surface):
    return bool((np.array(surface.image) != 255).any())


class TestRenderers:
    def test_registry(self):
        assert set(DEFAULT_RENDERERS) == {"text", "shape", "fill", "sound"}

    def test_text_draws(self):
        surface = _surface()
        render_text(surface, {"textString": "Hi", "x": 10, "y": 10, "fontSize": 18})
        assert _changed(surface)

    def test_text_overlay_position(self):
        surface = _surface()
        render_text(surface, {"textString": "Hi", "position": "bottom-right"})
        pixels = np.array(surface.image)
        assert (pixels[:50, :100] == 255).all()
        assert (pixels[50:, 100:] != 255).any()

    def test_shape_uses_palette_color(self):
        surface = _surface(palette={"accent": (177, 19, 77)})
        render_shape(surface, {"x": 50, "y": 50, "size": 20, "color": "accent"})
        assert surface.image.getpixel((100, 50)) == (177, 19, 77)

    def test_shape_intensity_scales(self):
        small, large = _surface(), _surface()
        render_shape(small, {"size": 20, "intensity": 0.5})
        render_shape(large, {"size": 20, "intensity": 3.0})
        count = lambda s: int((np.array(s.image) != 255).any(axis=2).sum())
        assert count(large) > count(small)

    def test_fill_covers_surface(self):
        surface = _surface()
        render_fill(surface, {"color": "#102030"})
        assert surface.image.getextrema() == ((16, 16), (32, 32), (48, 48))

    def test_sound_is_silent(self):
        surface = _surface()
        render_sound(surface, {"file": "beep.wav"})
        assert not _changed(surface)

    def test_bad_color_raises(self):
        with pytest.raises(ValueError, match="Unknown color"):
            render_fill(_surface(), {"color": "nope"})
