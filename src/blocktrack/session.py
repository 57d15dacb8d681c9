"""Editor session — the composition root.

Builds one Timeline and the components that act on it (gesture
controller, playback scheduler, frame generator) from a normalized
manifest config, and wires them together explicitly.

Data flow:
    gesture -> GestureController -> Timeline (dirty) -> FrameGenerator
    PlaybackScheduler reads the Timeline independently.
"""

import logging
from pathlib import Path
from typing import Callable

from .blocks import Block, block_from_animation
from .common import parse_hex_color
from .frames import FrameGenerator, PreviewSurface
from .interaction import EditorSettings, GestureController
from .manifest import (
    DEFAULT_EDITOR,
    DEFAULT_PLAYBACK,
    DEFAULT_PREVIEW,
    DEFAULT_TIMELINE,
    load_manifest,
)
from .playback import PlaybackScheduler, drive
from .timeline import Timeline

logger = logging.getLogger(__name__)


def default_config() -> dict:
    """A config equivalent to loading an empty manifest."""
    preview = dict(DEFAULT_PREVIEW)
    preview["resolution"] = tuple(preview["resolution"])
    preview["background"] = parse_hex_color(preview["background"])
    return {
        "timeline": dict(DEFAULT_TIMELINE),
        "editor": dict(DEFAULT_EDITOR),
        "playback": dict(DEFAULT_PLAYBACK),
        "preview": preview,
        "colors": {},
        "blocks": [],
    }


class EditorSession:
    """All engine components for one open timeline.

    Args:
        config: Normalized config from load_manifest (defaults if None).
        renderers: Optional template -> renderer overrides for previews.
        on_change: Called after any edit that should re-render the view.
        on_active_block: Trigger callback for playback.
    """

    def __init__(
        self,
        config: dict | None = None,
        renderers: dict | None = None,
        on_change: Callable[[], None] | None = None,
        on_active_block: Callable | None = None,
    ):
        self.config = config or default_config()
        self.on_change = on_change

        self.timeline = Timeline(track_count=self.config["timeline"]["initial_tracks"])
        self.settings = EditorSettings(**self.config["editor"])
        self.gestures = GestureController(
            self.timeline, self.settings, on_commit=lambda _id: self._changed(),
        )

        playback = self.config["playback"]
        self.playback = PlaybackScheduler(
            self.timeline,
            total_duration=self.config["timeline"]["total_duration"],
            on_active_block=on_active_block,
            fast_forward_factor=playback["fast_forward_factor"],
            skip_sound=playback["skip_sound"],
        )

        preview = self.config["preview"]
        surface = PreviewSurface(
            resolution=preview["resolution"],
            background=preview["background"],
            palette=self.config["colors"],
        )
        self.frames = FrameGenerator(self.timeline, surface, renderers=renderers)

        # Seed blocks are copied; the config may be shared between sessions.
        for block in self.config["blocks"]:
            self.timeline.add_or_update(Block.from_dict(block.to_dict()))

    @classmethod
    def from_manifest(cls, manifest_path: str | Path, **kwargs) -> "EditorSession":
        return cls(load_manifest(manifest_path), **kwargs)

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change()

    # ── Editing ──────────────────────────────────────────────────

    def add_animation(self, animation: dict) -> Block:
        """Convert a catalog animation and add (or update) it on the timeline."""
        block = block_from_animation(animation)
        self.timeline.add_or_update(block)
        self._changed()
        return block

    def delete_block(self, block_id: str) -> bool:
        removed = self.timeline.remove_by_id(block_id)
        if removed:
            self._changed()
        return removed

    def set_zoom(self, zoom: float) -> None:
        """Timeline horizontal zoom; affects pixel <-> time mapping only."""
        if zoom <= 0:
            raise ValueError(f"zoom must be > 0, got {zoom}")
        self.settings.zoom = zoom
        self._changed()

    # ── Playback shortcuts ───────────────────────────────────────

    def rewind(self) -> float:
        return self.playback.jump_by(-self.config["playback"]["small_step"])

    def forward(self) -> float:
        return self.playback.jump_by(self.config["playback"]["small_step"])

    def back_large(self) -> float:
        return self.playback.jump_by(-self.config["playback"]["large_step"])

    def forward_large(self) -> float:
        return self.playback.jump_by(self.config["playback"]["large_step"])

    async def run_playback(self) -> None:
        """Play from the current cursor until paused or the end is reached."""
        self.playback.play()
        await drive(self.playback, self.config["playback"]["tick_interval"])

    # ── Import / export ──────────────────────────────────────────

    def export_timeline(self, path: str | Path) -> None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        Path(path).write_text(self.timeline.to_json())
        logger.info("Exported timeline to %s", path)

    def import_timeline(self, path: str | Path) -> None:
        """Replace the timeline from a JSON file (all or nothing)."""
        self.timeline.load_json(Path(path).read_text())
        self._changed()

    def reset(self) -> None:
        """Clear the timeline and the generated frames."""
        self.timeline.reset()
        self.frames.reset()
        self.playback.pause()
        self.playback.jump_to_start()
        self._changed()

    def generate_frames(self, force: bool = False):
        return self.frames.generate(force=force)
