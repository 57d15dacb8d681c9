"""Project manifest loader — editor configuration plus seed blocks.

Parses a YAML manifest, fills in defaults for every section, converts hex
colors to RGB tuples, resolves ${path} variables in block parameters, and
validates block entries.

Manifest schema (every section optional):
  timeline:
    initial_tracks: 5
    total_duration: 60000          # ms, playback cursor upper bound
  editor:
    px_per_second: 100
    zoom: 1.0
    min_duration: 1000             # ms
    min_width_px: 25
    track_shift_threshold_px: 25
    track_shift_conflict: reject   # or "allow"
  playback:
    tick_interval: 200             # ms
    fast_forward_factor: 1.0
    skip_sound: false
    small_step: 2000
    large_step: 10000
  preview:
    resolution: [640, 360]
    background: "#FFFFFF"
  paths:
    sounds: /data/sounds
  colors:
    accent: "#B1134D"
  blocks:
    - name: Add Text
      kind: Text                   # Animation | Text | Sound | Static, or any other tag
      template: text               # optional renderer key
      color: "#c90076"
      parameters:
        startTime: 0
        duration: 2000
        textString: Hello
"""

from pathlib import Path

import yaml

from .blocks import block_from_animation
from .common import parse_hex_color, resolve_path_vars
from .timeline import VALID_CONFLICT_POLICIES


# ── Defaults ──────────────────────────────────────────────────────

DEFAULT_TIMELINE = {"initial_tracks": 5, "total_duration": 60000}

DEFAULT_EDITOR = {
    "px_per_second": 100,
    "zoom": 1.0,
    "min_duration": 1000,
    "min_width_px": 25,
    "track_shift_threshold_px": 25,
    "track_shift_conflict": "reject",
}

DEFAULT_PLAYBACK = {
    "tick_interval": 200,
    "fast_forward_factor": 1.0,
    "skip_sound": False,
    "small_step": 2000,
    "large_step": 10000,
}

DEFAULT_PREVIEW = {"resolution": [640, 360], "background": "#FFFFFF"}


# ── Manifest loading ──────────────────────────────────────────────


def load_manifest(manifest_path: str | Path) -> dict:
    """Load, validate, and normalize a project manifest.

    Processing pipeline:
      1. Parse YAML (an empty file is an empty manifest).
      2. Merge each settings section over its defaults and type-check.
      3. Parse preview.background and colors.* to RGB tuples.
      4. Resolve ${path} variables in block string values.
      5. Validate and convert blocks.

    Args:
        manifest_path: Path to the YAML manifest file.

    Returns:
        Normalized config dict with timeline/editor/playback/preview
        settings, a color palette, and a list of Blocks.

    Raises:
        ValueError: Unknown keys, bad values, invalid blocks.
        FileNotFoundError: Missing manifest file.
    """
    with open(manifest_path) as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError("Manifest: top level must be a mapping")

    config = {
        "timeline": _merge_section(raw, "timeline", DEFAULT_TIMELINE),
        "editor": _merge_section(raw, "editor", DEFAULT_EDITOR),
        "playback": _merge_section(raw, "playback", DEFAULT_PLAYBACK),
    }
    _validate_settings(config)

    preview = _merge_section(raw, "preview", DEFAULT_PREVIEW)
    resolution = preview["resolution"]
    if (
        not isinstance(resolution, (list, tuple))
        or len(resolution) != 2
        or not all(isinstance(v, int) and v > 0 for v in resolution)
    ):
        raise ValueError(
            f"Manifest: preview.resolution must be [width, height] of positive ints, "
            f"got {resolution!r}"
        )
    preview["resolution"] = tuple(resolution)
    preview["background"] = parse_hex_color(preview["background"])
    config["preview"] = preview

    colors = {}
    for key, value in (raw.get("colors") or {}).items():
        if isinstance(value, str):
            colors[key] = parse_hex_color(value)
        elif isinstance(value, list):
            colors[key] = tuple(value)
        else:
            colors[key] = value
    config["colors"] = colors

    paths = raw.get("paths") or {}
    blocks = []
    seen_ids = set()
    for i, entry in enumerate(raw.get("blocks", []) or []):
        _validate_block(entry, i)
        block = block_from_animation(_resolve_block_paths(entry, paths))
        if block.id in seen_ids:
            raise ValueError(f"Block {i}: duplicate id '{block.id}'")
        seen_ids.add(block.id)
        blocks.append(block)
    config["blocks"] = blocks

    return config


def _merge_section(raw: dict, name: str, defaults: dict) -> dict:
    """Overlay raw[name] on defaults, rejecting unknown keys."""
    section = raw.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"Manifest: '{name}' must be a mapping")
    unknown = set(section) - set(defaults)
    if unknown:
        raise ValueError(
            f"Manifest: unknown {name} setting(s) {sorted(unknown)}. "
            f"Valid: {sorted(defaults)}"
        )
    return {**defaults, **section}


def _validate_settings(config: dict) -> None:
    timeline = config["timeline"]
    if not isinstance(timeline["initial_tracks"], int) or timeline["initial_tracks"] < 0:
        raise ValueError(
            f"Manifest: timeline.initial_tracks must be a non-negative int, "
            f"got {timeline['initial_tracks']!r}"
        )
    _require_number(timeline, "timeline", "total_duration", minimum=0)

    editor = config["editor"]
    for key in ("px_per_second", "zoom", "min_duration"):
        _require_number(editor, "editor", key, minimum=0, inclusive=False)
    for key in ("min_width_px", "track_shift_threshold_px"):
        _require_number(editor, "editor", key, minimum=0)
    if editor["track_shift_conflict"] not in VALID_CONFLICT_POLICIES:
        raise ValueError(
            f"Manifest: invalid editor.track_shift_conflict "
            f"'{editor['track_shift_conflict']}'. Valid: {sorted(VALID_CONFLICT_POLICIES)}"
        )

    playback = config["playback"]
    _require_number(playback, "playback", "tick_interval", minimum=0, inclusive=False)
    _require_number(playback, "playback", "fast_forward_factor", minimum=1)
    _require_number(playback, "playback", "small_step", minimum=0)
    _require_number(playback, "playback", "large_step", minimum=0)
    if not isinstance(playback["skip_sound"], bool):
        raise ValueError("Manifest: playback.skip_sound must be true or false")


def _require_number(
    section: dict, name: str, key: str, minimum: float, inclusive: bool = True,
) -> None:
    value = section[key]
    ok = isinstance(value, (int, float)) and not isinstance(value, bool)
    if ok:
        ok = value >= minimum if inclusive else value > minimum
    if not ok:
        bound = f">= {minimum}" if inclusive else f"> {minimum}"
        raise ValueError(f"Manifest: {name}.{key} must be a number {bound}, got {value!r}")


def _resolve_block_paths(obj, paths: dict):
    """Recursively resolve ${var} in all string values within a block."""
    if isinstance(obj, str):
        return resolve_path_vars(obj, paths)
    elif isinstance(obj, dict):
        return {k: _resolve_block_paths(v, paths) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_resolve_block_paths(item, paths) for item in obj]
    return obj


def _validate_block(entry, index: int) -> None:
    """Validate one seed block entry before conversion."""
    prefix = f"Block {index}"
    if not isinstance(entry, dict):
        raise ValueError(f"{prefix}: must be a mapping")

    if "name" not in entry:
        raise ValueError(f"{prefix}: missing required field 'name'")

    kind = entry.get("kind", entry.get("type", "Static"))
    if not isinstance(kind, str) or not kind:
        raise ValueError(f"{prefix}: kind must be a non-empty string, got {kind!r}")

    parameters = entry.get("parameters", {})
    if not isinstance(parameters, dict):
        raise ValueError(f"{prefix}: 'parameters' must be a mapping")

    for key in ("startTime", "duration", "dur"):
        if key not in parameters:
            continue
        value = parameters[key]
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            raise ValueError(f"{prefix}: parameters.{key} must be a number, got {value!r}")
        if key == "startTime" and value < 0:
            raise ValueError(f"{prefix}: startTime must be >= 0, got {value}")
        if key != "startTime" and value <= 0:
            raise ValueError(f"{prefix}: {key} must be > 0, got {value}")
