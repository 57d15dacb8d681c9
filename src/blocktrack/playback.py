"""Playback scheduler — the time cursor and live block triggering.

The cursor advances at wall-clock rate while playing: one millisecond of
cursor time per millisecond of real time, whatever the fast-forward
factor. The factor only compresses how long a triggered block's effect
is considered to run (compressed = (end - start) / factor).

`run_blocks_at_time` is deliberately stateless: every call triggers every
block whose span contains the time, so a block active across several
ticks is triggered on each of them. Callers that want one trigger per
activation keep their own record.

Ticks come from a fixed-rate timer. `drive` provides one on asyncio;
everything else here is synchronous.
"""

import asyncio
import logging
import time
from typing import Callable

from .blocks import Block, BlockKind
from .common import format_timecode
from .timeline import Timeline

logger = logging.getLogger(__name__)


# ── Defaults ─────────────────────────────────────────────────────

DEFAULT_TOTAL_DURATION_MS = 60_000.0
DEFAULT_TICK_INTERVAL_MS = 200.0
SMALL_STEP_MS = 2000.0     # rewind / forward buttons
LARGE_STEP_MS = 10_000.0   # -10s / +10s buttons


def trigger_block(block: Block, skip_sound: bool, fast_forward_factor: float) -> float:
    """Default trigger callback: log the trigger and return the compressed run time.

    Sound blocks are silenced when skip_sound is set (fast-forwarding).
    """
    compressed = (block.time.end - block.time.start) / fast_forward_factor
    if block.kind is BlockKind.SOUND and skip_sound:
        logger.info("Skipping sound for block %s during fast-forward", block.id)
        return compressed
    logger.info(
        "Triggering block %s [%s] at x%s (skip_sound=%s), compressed run time %.1f ms",
        block.id, block.name, fast_forward_factor, skip_sound, compressed,
    )
    return compressed


class PlaybackScheduler:
    """Play/pause/seek cursor over a Timeline.

    Args:
        timeline: Read-only source of blocks.
        total_duration: Upper bound for the cursor (ms).
        on_active_block: Trigger callback (block, skip_sound, fast_forward_factor).
        fast_forward_factor: >= 1; compresses triggered effect durations.
        skip_sound: Suppress sound output of triggered blocks.
        clock: Monotonic clock in seconds (injectable for tests).
    """

    def __init__(
        self,
        timeline: Timeline,
        total_duration: float = DEFAULT_TOTAL_DURATION_MS,
        on_active_block: Callable[[Block, bool, float], object] | None = None,
        fast_forward_factor: float = 1.0,
        skip_sound: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ):
        if total_duration < 0:
            raise ValueError(f"total_duration must be >= 0, got {total_duration}")
        self.timeline = timeline
        self.total_duration = float(total_duration)
        self.on_active_block = on_active_block or trigger_block
        self.fast_forward_factor = 1.0
        self.set_fast_forward(fast_forward_factor)
        self.skip_sound = skip_sound
        self.clock = clock

        self.current_time = 0.0
        self.is_playing = False
        self._last_tick: float | None = None

    # ── Transport ────────────────────────────────────────────────

    def set_fast_forward(self, factor: float) -> None:
        if factor < 1:
            raise ValueError(f"fast_forward_factor must be >= 1, got {factor}")
        self.fast_forward_factor = float(factor)

    def play(self) -> None:
        if self.is_playing:
            return
        self.is_playing = True
        self._last_tick = self.clock()
        logger.info("Playing from %s", format_timecode(self.current_time))

    def pause(self) -> None:
        if not self.is_playing:
            return
        self.is_playing = False
        self._last_tick = None
        logger.info("Paused at %s", format_timecode(self.current_time))

    def toggle(self) -> bool:
        """Play if paused, pause if playing. Returns the new is_playing."""
        if self.is_playing:
            self.pause()
        else:
            self.play()
        return self.is_playing

    def jump_to(self, t: float) -> float:
        """Move the cursor, clamped to [0, total_duration]. Works while playing."""
        self.current_time = max(0.0, min(float(t), self.total_duration))
        if self.is_playing:
            self._last_tick = self.clock()
        logger.debug("Cursor jumped to %s", format_timecode(self.current_time))
        return self.current_time

    def jump_by(self, delta: float) -> float:
        return self.jump_to(self.current_time + delta)

    def jump_to_start(self) -> float:
        return self.jump_to(0.0)

    def jump_to_end(self) -> float:
        return self.jump_to(self.total_duration)

    # ── Ticking ──────────────────────────────────────────────────

    def tick(self) -> list[Block]:
        """Advance by the wall-clock time since the last tick and trigger.

        Playback pauses itself on reaching total_duration. Does nothing
        while paused.

        Returns:
            Blocks triggered on this tick.
        """
        if not self.is_playing:
            return []
        now = self.clock()
        elapsed_ms = (now - self._last_tick) * 1000.0
        self._last_tick = now
        self.current_time = min(self.current_time + elapsed_ms, self.total_duration)

        triggered = self.run_blocks_at_time(self.current_time)
        if self.current_time >= self.total_duration:
            logger.info("Reached end of timeline")
            self.pause()
        return triggered

    def active_blocks(self, t: float) -> list[Block]:
        """Blocks whose half-open span contains t, in track order."""
        return [block for block in self.timeline.blocks() if block.time.contains(t)]

    def run_blocks_at_time(
        self,
        t: float,
        skip_sound: bool | None = None,
        fast_forward_factor: float | None = None,
    ) -> list[Block]:
        """Invoke the trigger callback for every block active at t."""
        skip = self.skip_sound if skip_sound is None else skip_sound
        factor = self.fast_forward_factor if fast_forward_factor is None else fast_forward_factor
        active = self.active_blocks(t)
        for block in active:
            self.on_active_block(block, skip, factor)
        return active


async def drive(scheduler: PlaybackScheduler, interval_ms: float = DEFAULT_TICK_INTERVAL_MS) -> None:
    """Tick `scheduler` every interval until playback stops."""
    interval = interval_ms / 1000.0
    while scheduler.is_playing:
        scheduler.tick()
        if not scheduler.is_playing:
            break
        await asyncio.sleep(interval)
