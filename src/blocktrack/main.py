"""Subcommand dispatcher for blocktrack.

Usage:
    blocktrack arrange   --manifest project.yaml --output timeline.json
    blocktrack generate  --timeline timeline.json --output frames/
    blocktrack inspect   --timeline timeline.json --at 2500
"""

import argparse
import sys


COMMANDS = {
    "arrange": "Place manifest blocks on tracks and write timeline JSON",
    "generate": "Regenerate preview frames from a timeline and export PNGs",
    "inspect": "Print tracks, overlaps, and blocks active at a time",
}


def main(args=None):
    parser = argparse.ArgumentParser(
        prog="blocktrack",
        description="Timeline block editor engine: arrange, preview, inspect.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # Each subcommand delegates to its own module's main().
    for name, help_text in COMMANDS.items():
        subparsers.add_parser(name, help=help_text, add_help=False)

    # Parse only the subcommand name, pass the rest to the subcommand's parser.
    parsed, remaining = parser.parse_known_args(args)

    if parsed.command is None:
        parser.print_help()
        sys.exit(1)

    if parsed.command == "arrange":
        from .arrange_cli import main as arrange_main
        arrange_main(remaining)
    elif parsed.command == "generate":
        from .generate_cli import main as generate_main
        generate_main(remaining)
    elif parsed.command == "inspect":
        from .inspect_cli import main as inspect_main
        inspect_main(remaining)


if __name__ == "__main__":
    main()
