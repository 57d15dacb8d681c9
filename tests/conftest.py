"""Shared test fixtures for blocktrack tests."""

import pytest

from blocktrack.blocks import Block, BlockKind, BlockTime


def make_block(block_id, start, dur, kind=BlockKind.STATIC, **kwargs):
    """Block with a synchronized time span."""
    block = Block(id=block_id, kind=kind, time=BlockTime(), **kwargs)
    block.set_time(start, dur)
    return block


class FakeClock:
    """Monotonic clock in seconds, advanced by hand."""

    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance_ms(self, ms):
        self.now += ms / 1000.0


@pytest.fixture
def clock():
    return FakeClock()
