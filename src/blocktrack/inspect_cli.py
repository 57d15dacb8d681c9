"""CLI for inspecting a timeline file.

Prints every track with its blocks, any within-track overlaps (possible
after manual track moves), and optionally the blocks active at a time.

Usage:
    blocktrack inspect --timeline timeline.json
    blocktrack inspect --timeline timeline.json --at 2500
"""

import argparse
import logging
from pathlib import Path

from .blocks import kind_name
from .common import format_timecode
from .playback import PlaybackScheduler
from .timeline import Timeline


def inspect_timeline(timeline_path, at=None):
    """Print a summary of the timeline. Returns the loaded Timeline."""
    timeline = Timeline.from_json(Path(timeline_path).read_text())

    print(
        f"Timeline: {timeline.track_count} tracks, {timeline.block_count} blocks, "
        f"ends at {format_timecode(timeline.end_time())}"
    )
    for track_index, track in enumerate(timeline.tracks):
        print(f"  track {track_index}: {len(track)} blocks")
        for block in track:
            print(
                f"    {block.id} [{kind_name(block.kind)}] {block.name!r} "
                f"{block.start:.0f}-{block.end:.0f} ms"
            )

    overlaps = timeline.find_overlaps()
    if overlaps:
        print(f"\nOverlaps ({len(overlaps)}):")
        for track_index, id_a, id_b in overlaps:
            print(f"  track {track_index}: {id_a} <-> {id_b}")
    else:
        print("\nNo overlaps.")

    if at is not None:
        scheduler = PlaybackScheduler(
            timeline, total_duration=max(timeline.end_time(), at),
        )
        active = scheduler.active_blocks(at)
        print(f"\nActive at {format_timecode(at)}: {len(active)}")
        for block in active:
            print(f"  {block.id} {block.name!r}")

    return timeline


def main(args=None):
    parser = argparse.ArgumentParser(
        prog="blocktrack inspect",
        description="Print tracks, overlaps, and blocks active at a time.",
    )
    parser.add_argument(
        "--timeline", required=True,
        help="Path to timeline JSON",
    )
    parser.add_argument(
        "--at", type=float, default=None,
        help="Also list blocks active at this time (ms)",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Log engine activity to stderr",
    )
    parsed = parser.parse_args(args)

    logging.basicConfig(level=logging.INFO if parsed.verbose else logging.WARNING)

    if parsed.at is not None and parsed.at < 0:
        parser.error("--at must be >= 0")

    inspect_timeline(parsed.timeline, at=parsed.at)


if __name__ == "__main__":
    main()
