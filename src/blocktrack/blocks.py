"""Block model — the timed, editable unit placed on a track.

A Block carries a time span (start + duration, end derived), display
metadata (name, color, note), a kind tag, an optional renderer template
key, and a parameters mapping owned by the block.

Time is stored as start and duration only; `end` is computed on access so
it can never drift from `start + dur`. The two reserved parameter keys
`startTime` and `duration` mirror the block's time span and are
re-synchronized by every commit path (see `sync_parameters`).

All times are milliseconds.
"""

import time as _time
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


# ── Constants ────────────────────────────────────────────────────

DEFAULT_DURATION_MS = 5000.0     # duration of a converted block with no timing params
MIN_STORED_DURATION_MS = 1e-3    # absolute floor so stored spans stay positive

RESERVED_START_KEY = "startTime"
RESERVED_DURATION_KEY = "duration"


class BlockKind(Enum):
    ANIMATION = "Animation"
    TEXT = "Text"
    SOUND = "Sound"
    STATIC = "Static"


def parse_kind(value) -> BlockKind | str:
    """Known kinds become BlockKind members; any other tag is kept as-is."""
    if isinstance(value, BlockKind):
        return value
    try:
        return BlockKind(value)
    except ValueError:
        return str(value)


def kind_name(kind: BlockKind | str) -> str:
    return kind.value if isinstance(kind, BlockKind) else kind


@dataclass
class BlockTime:
    """Half-open time span [start, start + dur) in milliseconds."""
    start: float = 0.0
    dur: float = DEFAULT_DURATION_MS

    def __post_init__(self):
        self.set(self.start, self.dur)

    @property
    def end(self) -> float:
        return self.start + self.dur

    def set(self, start: float, dur: float) -> None:
        """Replace start and duration together (end follows)."""
        self.start = max(0.0, float(start))
        self.dur = max(MIN_STORED_DURATION_MS, float(dur))

    def contains(self, t: float) -> bool:
        return self.start <= t < self.end

    def to_dict(self) -> dict:
        return {"start": self.start, "dur": self.dur, "end": self.end}

    @classmethod
    def from_dict(cls, data: dict) -> "BlockTime":
        span = cls()
        start = float(data.get("start", 0.0))
        if "dur" in data:
            dur = float(data["dur"])
        elif "end" in data:
            dur = float(data["end"]) - start
        else:
            dur = DEFAULT_DURATION_MS
        span.set(start, dur)
        return span


def generate_block_id() -> str:
    """Opaque id: 'timeline-<epoch ms>-<random>'."""
    return f"timeline-{int(_time.time() * 1000)}-{random.randrange(1_000_000):06d}"


@dataclass
class Block:
    """A scheduled unit of work on the timeline."""
    id: str = field(default_factory=generate_block_id)
    name: str = ""
    color: str = "#888888"
    note: str = ""
    kind: BlockKind | str = BlockKind.STATIC
    template: str | None = None
    time: BlockTime = field(default_factory=BlockTime)
    parameters: dict[str, Any] = field(default_factory=dict)

    @property
    def start(self) -> float:
        return self.time.start

    @property
    def end(self) -> float:
        return self.time.end

    def set_time(self, start: float, dur: float) -> None:
        """Set the time span and mirror it into the reserved parameters."""
        self.time.set(start, dur)
        self.sync_parameters()

    def sync_parameters(self) -> None:
        self.parameters[RESERVED_START_KEY] = self.time.start
        self.parameters[RESERVED_DURATION_KEY] = self.time.dur

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "note": self.note,
            "kind": kind_name(self.kind),
            "template": self.template,
            "time": self.time.to_dict(),
            "parameters": dict(self.parameters),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Block":
        if not isinstance(data, dict):
            raise ValueError(f"Block must be an object, got {type(data).__name__}")
        if "id" not in data:
            raise ValueError("Block is missing required field 'id'")
        if not isinstance(data.get("time"), dict):
            raise ValueError(f"Block '{data['id']}': missing or invalid 'time'")
        parameters = data.get("parameters", {})
        if not isinstance(parameters, dict):
            raise ValueError(f"Block '{data['id']}': 'parameters' must be an object")
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            color=data.get("color", "#888888"),
            note=data.get("note", ""),
            kind=parse_kind(data.get("kind", BlockKind.STATIC.value)),
            template=data.get("template"),
            time=BlockTime.from_dict(data["time"]),
            parameters=dict(parameters),
        )


# ── Overlap predicate ────────────────────────────────────────────


def spans_overlap(a: BlockTime, b: BlockTime) -> bool:
    """Half-open overlap test; touching endpoints do not overlap."""
    return not (a.end <= b.start or a.start >= b.end)


def blocks_overlap(a: Block, b: Block) -> bool:
    return spans_overlap(a.time, b.time)


# ── Conversion ───────────────────────────────────────────────────


def _float_param(parameters: dict, *keys: str) -> float | None:
    """First key whose value parses as a non-zero float, else None."""
    for key in keys:
        try:
            value = float(parameters.get(key))
        except (TypeError, ValueError):
            continue
        if value:
            return value
    return None


def block_from_animation(animation: dict) -> Block:
    """Convert a catalog animation dict into a timeline Block.

    The animation's parameters supply the timing: `startTime` (default 0)
    and `duration`, falling back to `dur`, then DEFAULT_DURATION_MS.
    An existing `id` is kept so re-adding an edited animation updates it
    in place rather than duplicating it.

    Args:
        animation: Dict with name, optional color/note/kind/template/id
            and a parameters mapping.

    Returns:
        A Block with its reserved parameters synchronized.
    """
    parameters = dict(animation.get("parameters") or {})
    start = _float_param(parameters, RESERVED_START_KEY) or 0.0
    dur = _float_param(parameters, RESERVED_DURATION_KEY, "dur") or DEFAULT_DURATION_MS

    kind = animation.get("kind", animation.get("type", BlockKind.STATIC.value))
    block = Block(
        name=animation.get("name", ""),
        color=animation.get("color", "#888888"),
        note=animation.get("note", ""),
        kind=parse_kind(kind),
        template=animation.get("template"),
        parameters=parameters,
    )
    if animation.get("id"):
        block.id = str(animation["id"])
    block.set_time(start, dur)
    return block
