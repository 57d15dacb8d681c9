"""CLI for frame generation — replay a timeline into preview PNGs.

One PNG is written per rendered block, in chronological order. Preview
resolution, background, and named colors come from the manifest when one
is given; its seed blocks are ignored in favor of the timeline file.

Usage:
    blocktrack generate --timeline timeline.json --output frames/
    blocktrack generate --timeline timeline.json --manifest project.yaml \
        --output frames/ --strict
"""

import argparse
import logging
from pathlib import Path

from .frames import export_frames
from .session import EditorSession


def generate(timeline_path, output_dir, manifest_path=None, force=False, strict=False):
    """Load a timeline, regenerate its frames, and export them.

    Existing frame PNGs are only removed once the new frames are ready, so
    a bad timeline or a strict render failure leaves them in place.

    Raises:
        FileExistsError: Frame PNGs already in output_dir and not force.
    """
    out_dir = Path(output_dir)
    existing = sorted(out_dir.glob("frame-*.png")) if out_dir.exists() else []
    if existing and not force:
        raise FileExistsError(
            f"{len(existing)} frame files already in {out_dir} (use --force to overwrite)"
        )

    if manifest_path:
        session = EditorSession.from_manifest(manifest_path)
    else:
        session = EditorSession()
    session.frames.strict = strict
    session.import_timeline(timeline_path)

    print(
        f"Generating frames: {session.timeline.block_count} blocks "
        f"on {session.timeline.track_count} tracks"
    )
    frames = session.generate_frames(force=True)

    for path in existing:
        path.unlink()
    written = export_frames(frames, out_dir)

    for failure in session.frames.failures:
        print(f"  FAILED {failure.block_id} ({failure.template}): {failure.error}")
    print(f"\nDone: {len(written)} frames in {out_dir}")
    return written


def main(args=None):
    parser = argparse.ArgumentParser(
        prog="blocktrack generate",
        description="Regenerate preview frames from a timeline and export PNGs.",
    )
    parser.add_argument(
        "--timeline", required=True,
        help="Path to timeline JSON",
    )
    parser.add_argument(
        "--output", required=True,
        help="Output directory for frame PNGs",
    )
    parser.add_argument(
        "--manifest", default=None,
        help="YAML project manifest for preview settings and colors",
    )
    parser.add_argument(
        "--force", action="store_true",
        help="Overwrite frame files already in the output directory",
    )
    parser.add_argument(
        "--strict", action="store_true",
        help="Stop on the first renderer failure instead of skipping the block",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Log engine activity to stderr",
    )
    parsed = parser.parse_args(args)

    logging.basicConfig(level=logging.INFO if parsed.verbose else logging.WARNING)

    generate(
        parsed.timeline, parsed.output,
        manifest_path=parsed.manifest,
        force=parsed.force,
        strict=parsed.strict,
    )


if __name__ == "__main__":
    main()
