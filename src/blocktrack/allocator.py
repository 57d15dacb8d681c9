"""Track allocation — first-fit placement of blocks onto tracks.

Tracks are scanned in ascending index order and the first track where the
new block overlaps nothing wins. When every track has a conflict a new
empty track is appended. There is no packing optimization and no
preference for recently freed slots, so placement is deterministic for a
given track layout.

The allocator never inserts the block itself; the caller pushes it into
the returned track.
"""

import logging

from .blocks import Block, blocks_overlap

logger = logging.getLogger(__name__)


def track_has_room(track: list[Block], block: Block) -> bool:
    """True if `block` overlaps no block in `track` (ignoring itself by id)."""
    return not any(
        blocks_overlap(existing, block)
        for existing in track
        if existing.id != block.id
    )


def find_free_track(tracks: list[list[Block]], block: Block) -> int | None:
    """Index of the first track with room for `block`, or None."""
    for index, track in enumerate(tracks):
        if track_has_room(track, block):
            return index
    return None


def place_block(tracks: list[list[Block]], block: Block) -> int:
    """Choose the track for `block`, appending an empty track if needed.

    Args:
        tracks: The store's track list. Only ever grows by one empty track.
        block: Block to place.

    Returns:
        Index of the track the caller should append `block` to.
    """
    index = find_free_track(tracks, block)
    if index is not None:
        return index

    tracks.append([])
    index = len(tracks) - 1
    logger.info("No free track for block %s; created track %d", block.id, index)
    return index
