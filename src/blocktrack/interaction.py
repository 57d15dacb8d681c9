"""Pointer gestures on timeline blocks — resize, reposition, track shift.

A gesture is an explicit state machine:

    Idle --begin(handle)--> Dragging(mode) --end()/cancel()--> Idle

Modes:
  - resize_left:  left edge handle. Moves start, keeps end fixed.
  - resize_right: right edge handle. Changes duration, start fixed.
  - move_left / move_right: reposition pegs. Shift start, keep duration.
  - shift_track_up / shift_track_down: vertical handles. One-shot move to
    the neighboring track once the pointer travels past a pixel threshold.

The arithmetic lives in three pure functions on plain data
(`start_gesture`, `apply_delta`, `commit_time`). `GestureController`
feeds them raw pointer samples and talks to the Timeline. The store is
not touched while dragging; the live preview span is read from the
DragState (see `block_extent_px`) until the gesture ends.

Horizontal deltas are always taken from the previous pointer sample, so a
drag that hits a clamp and reverses responds immediately instead of
first paying back the clamped distance. Vertical modes compare the total
displacement since the gesture started against the threshold.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable

from .timeline import Timeline, VALID_CONFLICT_POLICIES

logger = logging.getLogger(__name__)


class DragMode(Enum):
    RESIZE_LEFT = "resize_left"
    RESIZE_RIGHT = "resize_right"
    MOVE_LEFT = "move_left"
    MOVE_RIGHT = "move_right"
    SHIFT_TRACK_UP = "shift_track_up"
    SHIFT_TRACK_DOWN = "shift_track_down"

    @property
    def is_vertical(self) -> bool:
        return self in (DragMode.SHIFT_TRACK_UP, DragMode.SHIFT_TRACK_DOWN)


@dataclass
class EditorSettings:
    """Pixel/time mapping and gesture limits."""
    px_per_second: float = 100.0
    zoom: float = 1.0
    min_duration: float = 1000.0          # ms
    min_width_px: float = 25.0            # rendering-only floor
    track_shift_threshold_px: float = 25.0
    track_shift_conflict: str = "reject"

    def __post_init__(self):
        if self.px_per_second <= 0:
            raise ValueError(f"px_per_second must be > 0, got {self.px_per_second}")
        if self.zoom <= 0:
            raise ValueError(f"zoom must be > 0, got {self.zoom}")
        if self.min_duration <= 0:
            raise ValueError(f"min_duration must be > 0, got {self.min_duration}")
        if self.track_shift_conflict not in VALID_CONFLICT_POLICIES:
            raise ValueError(
                f"Unknown track_shift_conflict '{self.track_shift_conflict}'. "
                f"Valid: {sorted(VALID_CONFLICT_POLICIES)}"
            )

    def px_to_ms(self, px: float) -> float:
        return px / (self.px_per_second * self.zoom) * 1000.0

    def ms_to_px(self, ms: float) -> float:
        return ms / 1000.0 * self.px_per_second * self.zoom


@dataclass(frozen=True)
class DragState:
    """Everything a gesture needs between pointer samples."""
    block_id: str
    mode: DragMode
    track_index: int
    track_count: int
    orig_start: float
    orig_dur: float
    start: float
    dur: float
    origin_x: float
    origin_y: float
    last_x: float
    last_y: float
    shift_target: int | None = None

    @property
    def end(self) -> float:
        return self.start + self.dur

    @property
    def changed(self) -> bool:
        return self.start != self.orig_start or self.dur != self.orig_dur


# ── Pure gesture functions ───────────────────────────────────────


def start_gesture(
    block,
    track_index: int,
    track_count: int,
    mode: DragMode,
    x: float,
    y: float,
) -> DragState:
    """Capture the pointer position and the block's original span."""
    return DragState(
        block_id=block.id,
        mode=mode,
        track_index=track_index,
        track_count=track_count,
        orig_start=block.time.start,
        orig_dur=block.time.dur,
        start=block.time.start,
        dur=block.time.dur,
        origin_x=x,
        origin_y=y,
        last_x=x,
        last_y=y,
    )


def apply_delta(state: DragState, x: float, y: float, settings: EditorSettings) -> DragState:
    """Advance a gesture by one pointer sample and return the new state."""
    mode = state.mode
    min_dur = settings.min_duration

    if mode.is_vertical:
        dy = y - state.origin_y
        target = None
        threshold = settings.track_shift_threshold_px
        if mode is DragMode.SHIFT_TRACK_UP and dy < -threshold and state.track_index > 0:
            target = state.track_index - 1
        elif (
            mode is DragMode.SHIFT_TRACK_DOWN
            and dy > threshold
            and state.track_index < state.track_count - 1
        ):
            target = state.track_index + 1
        return replace(state, last_x=x, last_y=y, shift_target=target)

    delta_ms = settings.px_to_ms(x - state.last_x)
    start, dur = state.start, state.dur

    if mode is DragMode.RESIZE_LEFT:
        end = state.orig_start + state.orig_dur
        start = min(start + delta_ms, end - min_dur)
        start = max(0.0, start)
        dur = max(min_dur, end - start)
    elif mode is DragMode.RESIZE_RIGHT:
        dur = max(min_dur, dur + delta_ms)
    else:  # move_left / move_right
        start = max(0.0, start + delta_ms)

    return replace(state, start=start, dur=dur, last_x=x, last_y=y)


def commit_time(state: DragState) -> tuple[float, float]:
    """Final (start, dur) for a horizontal gesture."""
    return state.start, state.dur


def block_extent_px(start: float, dur: float, settings: EditorSettings) -> tuple[float, float]:
    """Visual (left, width) of a span, with the min_width_px floor applied."""
    left = settings.ms_to_px(start)
    width = max(settings.min_width_px, settings.ms_to_px(dur))
    return left, width


# ── Controller ───────────────────────────────────────────────────


class GestureController:
    """Runs one drag gesture at a time against a Timeline.

    Args:
        timeline: Store to commit into.
        settings: Pixel mapping and limits.
        on_commit: Called with the block id after every commit, so the
            view can re-render.
    """

    def __init__(
        self,
        timeline: Timeline,
        settings: EditorSettings | None = None,
        on_commit: Callable[[str], None] | None = None,
    ):
        self.timeline = timeline
        self.settings = settings or EditorSettings()
        self.on_commit = on_commit
        self.state: DragState | None = None

    @property
    def is_dragging(self) -> bool:
        return self.state is not None

    def begin(self, block_id: str, mode: DragMode, x: float, y: float) -> DragState | None:
        """Pointer down on a handle. Returns None if the block is gone."""
        if self.state is not None:
            raise RuntimeError(
                f"Gesture already in progress on block {self.state.block_id}"
            )
        found = self.timeline.find(block_id)
        if found is None:
            logger.warning("Drag start: block %s not found", block_id)
            return None
        track_index, block = found
        self.state = start_gesture(
            block, track_index, self.timeline.track_count, mode, x, y,
        )
        logger.debug("Drag %s started on block %s", mode.value, block_id)
        return self.state

    def move(self, x: float, y: float) -> DragState | None:
        """Pointer move. Ignored while idle."""
        if self.state is None:
            return None
        state = apply_delta(self.state, x, y, self.settings)

        if state.shift_target is not None:
            # Track shift commits at the threshold crossing and ends the gesture.
            self.state = None
            moved = self.timeline.move_between_tracks(
                state.block_id, state.track_index, state.shift_target,
                on_conflict=self.settings.track_shift_conflict,
            )
            if moved:
                self._notify(state.block_id)
            return state

        self.state = state
        return state

    def end(self) -> bool:
        """Pointer up. Commits horizontal gestures; returns True if the store changed."""
        state, self.state = self.state, None
        if state is None or state.mode.is_vertical or not state.changed:
            return False

        start, dur = commit_time(state)
        if not self.timeline.apply_time_override(state.block_id, start, dur):
            return False
        logger.info(
            "Committed %s on block %s: start=%.1f dur=%.1f",
            state.mode.value, state.block_id, start, dur,
        )
        self._notify(state.block_id)
        return True

    def cancel(self) -> None:
        """Abandon the gesture (pointer leave, Escape). The store is untouched."""
        if self.state is not None:
            logger.debug("Drag on block %s cancelled", self.state.block_id)
        self.state = None

    def preview_extent(self) -> tuple[float, float] | None:
        """Live (left, width) of the dragged block, or None when idle."""
        if self.state is None:
            return None
        return block_extent_px(self.state.start, self.state.dur, self.settings)

    def _notify(self, block_id: str) -> None:
        if self.on_commit is not None:
            self.on_commit(block_id)
