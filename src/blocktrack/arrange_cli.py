"""CLI for arranging — place manifest seed blocks on tracks.

Blocks are added in manifest order through the first-fit allocator, so a
block that overlaps everything already placed lands on a new track.

Usage:
    blocktrack arrange --manifest project.yaml --output timeline.json
    blocktrack arrange --manifest project.yaml --validate
"""

import argparse
import logging

from .common import format_timecode
from .session import EditorSession


def arrange(manifest_path, output_path=None):
    """Build a session from the manifest and optionally export its timeline.

    Returns:
        The EditorSession holding the arranged timeline.
    """
    session = EditorSession.from_manifest(manifest_path)
    timeline = session.timeline

    print(f"Arranged {timeline.block_count} blocks on {timeline.track_count} tracks")
    for track_index, track in enumerate(timeline.tracks):
        for block in track:
            print(
                f"  track {track_index}: {block.id} {block.name!r} "
                f"{format_timecode(block.start)} -> {format_timecode(block.end)}"
            )

    if output_path:
        session.export_timeline(output_path)
        print(f"\nDone: {output_path}")
    return session


def main(args=None):
    parser = argparse.ArgumentParser(
        prog="blocktrack arrange",
        description="Place manifest blocks on tracks and write timeline JSON.",
    )
    parser.add_argument(
        "--manifest", required=True,
        help="Path to YAML project manifest",
    )
    parser.add_argument(
        "--output",
        help="Output timeline JSON path (required unless --validate)",
    )
    parser.add_argument(
        "--validate", action="store_true",
        help="Validate and arrange only, don't write anything",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Log engine activity to stderr",
    )
    parsed = parser.parse_args(args)

    logging.basicConfig(level=logging.INFO if parsed.verbose else logging.WARNING)

    if not parsed.validate and not parsed.output:
        parser.error("--output is required (unless using --validate)")

    arrange(parsed.manifest, None if parsed.validate else parsed.output)


if __name__ == "__main__":
    main()
