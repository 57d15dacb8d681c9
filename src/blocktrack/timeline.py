"""Timeline store — the canonical ordered list of tracks.

Each track is a plain list of Blocks, ordered by insertion rather than by
time. Blocks are looked up by id with a linear scan across all tracks.

Every structural mutation (add, update, move, remove, time override,
reset, import) sets `dirty`, the only signal that previously generated
frames are stale. The frame pipeline is the only thing that clears it.

Invariant: no two blocks in one track overlap in time, for blocks that
reach the track through `add_or_update`. `move_between_tracks` can bypass
the check (on_conflict="allow"); callers that need the invariant after a
manual move pass on_conflict="reject".

Persistence is a plain JSON document:
    {"tracks": [[Block, ...], ...]}
Import replaces the whole store or nothing.
"""

import json
import logging

from .allocator import place_block, track_has_room
from .blocks import Block, blocks_overlap

logger = logging.getLogger(__name__)

DEFAULT_TRACK_COUNT = 5

VALID_CONFLICT_POLICIES = {"allow", "reject"}


class TimelineImportError(ValueError):
    """Raised when a persisted timeline document cannot be loaded."""


class Timeline:
    """Ordered tracks of blocks plus the dirty flag."""

    def __init__(self, track_count: int = DEFAULT_TRACK_COUNT):
        if track_count < 0:
            raise ValueError(f"track_count must be >= 0, got {track_count}")
        self.tracks: list[list[Block]] = [[] for _ in range(track_count)]
        self.dirty = False

    # ── Queries ──────────────────────────────────────────────────

    @property
    def track_count(self) -> int:
        return len(self.tracks)

    @property
    def block_count(self) -> int:
        return sum(len(track) for track in self.tracks)

    def find(self, block_id: str) -> tuple[int, Block] | None:
        """Locate a block by id. Returns (track_index, block) or None."""
        for track_index, track in enumerate(self.tracks):
            for block in track:
                if block.id == block_id:
                    return track_index, block
        return None

    def __contains__(self, block_id: str) -> bool:
        return self.find(block_id) is not None

    def blocks(self) -> list[Block]:
        """All blocks, track by track, in stored order."""
        return [block for track in self.tracks for block in track]

    def chronological(self) -> list[Block]:
        """All blocks stably sorted by start time."""
        return sorted(self.blocks(), key=lambda b: b.time.start)

    def end_time(self) -> float:
        """Latest block end, or 0 for an empty timeline."""
        return max((b.time.end for b in self.blocks()), default=0.0)

    def find_overlaps(self) -> list[tuple[int, str, str]]:
        """Every overlapping pair within a track as (track_index, id_a, id_b)."""
        overlaps = []
        for track_index, track in enumerate(self.tracks):
            for i, a in enumerate(track):
                for b in track[i + 1:]:
                    if blocks_overlap(a, b):
                        overlaps.append((track_index, a.id, b.id))
        return overlaps

    # ── Mutations ────────────────────────────────────────────────

    def _ensure_track(self, index: int) -> None:
        while len(self.tracks) <= index:
            self.tracks.append([])

    def add_or_update(self, block: Block) -> int:
        """Insert a new block via the allocator, or replace one with the same id.

        Replacement keeps the block's track and position within the track.
        Either way the block's span is clamped and its reserved parameters
        re-synchronized before it is stored.

        Returns:
            Index of the track now holding the block.
        """
        block.set_time(block.time.start, block.time.dur)
        for track_index, track in enumerate(self.tracks):
            for i, existing in enumerate(track):
                if existing.id == block.id:
                    track[i] = block
                    self.dirty = True
                    logger.info("Replaced block %s in track %d", block.id, track_index)
                    return track_index

        track_index = place_block(self.tracks, block)
        self.tracks[track_index].append(block)
        self.dirty = True
        logger.info("Inserted block %s into track %d", block.id, track_index)
        return track_index

    def remove_by_id(self, block_id: str) -> bool:
        """Remove the first block with `block_id`. Missing ids are a no-op."""
        for track in self.tracks:
            for i, block in enumerate(track):
                if block.id == block_id:
                    del track[i]
                    self.dirty = True
                    logger.info("Removed block %s", block_id)
                    return True
        logger.warning("Remove: block %s not found", block_id)
        return False

    def move_between_tracks(
        self,
        block_id: str,
        from_track: int,
        to_track: int,
        on_conflict: str = "allow",
    ) -> bool:
        """Move a block to another track, appending it there.

        The destination is created (with any intermediate empty tracks)
        when `to_track` is past the end. With on_conflict="allow" the
        destination is not checked for overlaps; with "reject" a move
        that would overlap is refused and the store is left unchanged.

        Returns:
            True if the block moved.
        """
        if on_conflict not in VALID_CONFLICT_POLICIES:
            raise ValueError(
                f"Unknown conflict policy '{on_conflict}'. "
                f"Valid: {sorted(VALID_CONFLICT_POLICIES)}"
            )
        if to_track < 0:
            raise ValueError(f"Destination track must be >= 0, got {to_track}")

        found = self.find(block_id)
        if found is None:
            logger.warning("Move: block %s not found", block_id)
            return False
        current_track, block = found
        if current_track != from_track:
            logger.warning(
                "Move: block %s is in track %d, not %d; moving from %d",
                block_id, current_track, from_track, current_track,
            )

        if (
            on_conflict == "reject"
            and to_track < len(self.tracks)
            and not track_has_room(self.tracks[to_track], block)
        ):
            logger.info(
                "Move rejected: block %s overlaps a block in track %d",
                block_id, to_track,
            )
            return False

        source = self.tracks[current_track]
        del source[next(i for i, b in enumerate(source) if b is block)]
        self._ensure_track(to_track)
        self.tracks[to_track].append(block)
        block.sync_parameters()
        self.dirty = True
        logger.info("Block %s moved: track %d -> %d", block_id, current_track, to_track)
        return True

    def apply_time_override(self, block_id: str, start: float, dur: float) -> bool:
        """Set a block's start and duration and mirror them into its parameters.

        A negative start is clamped to 0; the duration is floored just
        above zero. Missing ids are a no-op.
        """
        found = self.find(block_id)
        if found is None:
            logger.warning("Time override: block %s not found", block_id)
            return False
        _, block = found
        if start < 0 or dur <= 0:
            logger.debug("Clamping time override for %s: start=%s dur=%s", block_id, start, dur)
        block.set_time(start, dur)
        self.dirty = True
        return True

    def update_block(
        self,
        block_id: str,
        name: str | None = None,
        color: str | None = None,
        parameters: dict | None = None,
        time_override: tuple[float, float] | None = None,
    ) -> bool:
        """Merge edited metadata/parameters into a block, keeping its track.

        `parameters` replaces the block's parameter mapping. When
        `time_override` (start, dur) is given it wins over any
        startTime/duration in `parameters`.
        """
        found = self.find(block_id)
        if found is None:
            logger.warning("Update: block %s not found", block_id)
            return False
        _, block = found
        if name is not None:
            block.name = name
        if color:
            block.color = color
        if parameters is not None:
            block.parameters = dict(parameters)
        if time_override is not None:
            block.set_time(*time_override)
        else:
            block.sync_parameters()
        self.dirty = True
        logger.info("Updated block %s", block_id)
        return True

    def reset(self) -> None:
        """Empty every track, keeping the track count."""
        self.tracks = [[] for _ in self.tracks]
        self.dirty = True
        logger.warning("Timeline reset")

    # ── Persistence ──────────────────────────────────────────────

    def serialize(self) -> dict:
        return {"tracks": [[block.to_dict() for block in track] for track in self.tracks]}

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.serialize(), indent=indent)

    @staticmethod
    def _parse_tracks(data) -> list[list[Block]]:
        if not isinstance(data, dict) or "tracks" not in data:
            raise TimelineImportError("Timeline document: missing required 'tracks' field")
        raw_tracks = data["tracks"]
        if not isinstance(raw_tracks, list):
            raise TimelineImportError("Timeline document: 'tracks' must be a list")

        tracks = []
        seen_ids = set()
        for t, raw_track in enumerate(raw_tracks):
            if not isinstance(raw_track, list):
                raise TimelineImportError(f"Track {t}: must be a list of blocks")
            track = []
            for b, raw_block in enumerate(raw_track):
                try:
                    block = Block.from_dict(raw_block)
                except (TypeError, ValueError) as exc:
                    raise TimelineImportError(f"Track {t}, block {b}: {exc}") from exc
                if block.id in seen_ids:
                    raise TimelineImportError(f"Duplicate block id: '{block.id}'")
                seen_ids.add(block.id)
                track.append(block)
            tracks.append(track)
        return tracks

    def load(self, data: dict) -> None:
        """Replace the whole store with a serialized document.

        Raises:
            TimelineImportError: Malformed document; the store is unchanged.
        """
        tracks = self._parse_tracks(data)
        self.tracks = tracks
        self.dirty = True
        logger.info("Imported timeline: %d tracks, %d blocks", self.track_count, self.block_count)

    def load_json(self, text: str) -> None:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise TimelineImportError(f"Timeline document is not valid JSON: {exc}") from exc
        self.load(data)

    @classmethod
    def deserialize(cls, data: dict) -> "Timeline":
        timeline = cls(track_count=0)
        timeline.load(data)
        return timeline

    @classmethod
    def from_json(cls, text: str) -> "Timeline":
        timeline = cls(track_count=0)
        timeline.load_json(text)
        return timeline
