"""Frame generation — replay the timeline onto a preview surface.

The pipeline is a naive full rebuild:
  1. Skip if the timeline is clean (unless forced).
  2. Clear the frame list and reset the surface to its blank state.
  3. Flatten all tracks and stably sort by start time.
  4. For each block: run its renderer against the shared surface, then
     snapshot the surface into a new Frame.
  5. Clear the timeline's dirty flag.

The surface is cumulative: frame N shows the effect of blocks 0..N in
chronological order. There is no per-range caching.

A renderer that raises is logged and skipped, leaving no frame for that
block, and the run carries on. With strict=True the first failure is
re-raised instead and the timeline stays dirty.
"""

import bisect
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

import numpy as np
from PIL import Image

from .blocks import Block
from .renderers import DEFAULT_RENDERERS, KIND_TEMPLATES
from .timeline import Timeline

logger = logging.getLogger(__name__)

DEFAULT_RESOLUTION = (640, 360)
DEFAULT_BACKGROUND = (255, 255, 255)

Renderer = Callable[["PreviewSurface", dict], None]


@dataclass(frozen=True)
class Frame:
    """One snapshot of the preview surface."""
    index: int
    block_id: str
    start: float
    pixels: np.ndarray = field(repr=False, compare=False)

    def to_image(self) -> Image.Image:
        return Image.fromarray(self.pixels)


class PreviewSurface:
    """Mutable RGB canvas shared by all renderers during one run."""

    def __init__(
        self,
        resolution: tuple[int, int] = DEFAULT_RESOLUTION,
        background: tuple[int, int, int] = DEFAULT_BACKGROUND,
        palette: dict[str, tuple[int, int, int]] | None = None,
    ):
        self.resolution = tuple(resolution)
        self.background = tuple(background)
        self.palette = palette or {}
        self.image = Image.new("RGB", self.resolution, self.background)

    def reset(self) -> None:
        self.image = Image.new("RGB", self.resolution, self.background)

    def snapshot(self, index: int, block: Block) -> Frame:
        pixels = np.array(self.image, dtype=np.uint8)
        pixels.setflags(write=False)
        return Frame(index=index, block_id=block.id, start=block.time.start, pixels=pixels)


@dataclass
class RenderFailure:
    block_id: str
    template: str | None
    error: Exception


class FrameGenerator:
    """Rebuilds the frame list from a Timeline on demand.

    Args:
        timeline: Store to read; its dirty flag gates regeneration.
        surface: Preview surface (a default one is created if omitted).
        renderers: Template name -> renderer. Defaults to the built-ins.
        strict: Re-raise the first render failure instead of skipping.
    """

    def __init__(
        self,
        timeline: Timeline,
        surface: PreviewSurface | None = None,
        renderers: dict[str, Renderer] | None = None,
        strict: bool = False,
    ):
        self.timeline = timeline
        self.surface = surface or PreviewSurface()
        self.renderers = dict(DEFAULT_RENDERERS if renderers is None else renderers)
        self.strict = strict
        self.frames: list[Frame] = []
        self.failures: list[RenderFailure] = []

    def renderer_for(self, block: Block) -> tuple[str | None, Renderer | None]:
        """Resolve the (template, renderer) pair for a block.

        An explicit template that isn't registered raises KeyError. A
        block with no template and no kind default gets (None, None).
        """
        template = block.template or KIND_TEMPLATES.get(block.kind)
        if template is None:
            return None, None
        if template not in self.renderers:
            if block.template:
                raise KeyError(f"No renderer registered for template '{template}'")
            return template, None
        return template, self.renderers[template]

    def reset(self) -> None:
        """Drop all frames and blank the surface."""
        self.frames = []
        self.failures = []
        self.surface.reset()

    def generate(self, force: bool = False) -> list[Frame]:
        """Regenerate frames if the timeline is dirty (or force is set)."""
        if not self.timeline.dirty and not force:
            logger.info("Timeline not dirty; reusing %d frames", len(self.frames))
            return self.frames

        logger.info("Generating frames from timeline (%d blocks)", self.timeline.block_count)
        self.reset()

        for block in self.timeline.chronological():
            template = block.template
            try:
                template, renderer = self.renderer_for(block)
                if renderer is not None:
                    renderer(self.surface, block.parameters)
            except Exception as exc:
                if self.strict:
                    raise
                logger.exception("Render failed for block %s (%s)", block.id, template)
                self.failures.append(RenderFailure(block.id, template, exc))
                continue
            self.frames.append(self.surface.snapshot(len(self.frames), block))

        self.timeline.dirty = False
        logger.info(
            "Generated %d frames (%d failures)", len(self.frames), len(self.failures),
        )
        return self.frames

    def frame_at(self, t: float) -> Frame | None:
        """Latest frame whose block starts at or before t, for scrubbing."""
        starts = [frame.start for frame in self.frames]
        i = bisect.bisect_right(starts, t)
        return self.frames[i - 1] if i else None


def export_frames(frames: list[Frame], output_dir: str | Path) -> list[Path]:
    """Write frames as frame-NNNN-<block id>.png files.

    Returns:
        Paths written, in frame order.
    """
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for frame in frames:
        path = out_dir / f"frame-{frame.index:04d}-{frame.block_id}.png"
        frame.to_image().save(path)
        written.append(path)
    return written
