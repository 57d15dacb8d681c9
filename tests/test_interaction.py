"""Tests for drag gestures: pure functions and the controller."""

import pytest

from blocktrack.interaction import (
    DragMode,
    EditorSettings,
    GestureController,
    apply_delta,
    block_extent_px,
    commit_time,
    start_gesture,
)
from blocktrack.timeline import Timeline
from conftest import make_block


# 100 px/s at zoom 1: 1 px == 10 ms.
SETTINGS = EditorSettings()


def _drag(block, mode, samples, track_index=0, track_count=5, settings=SETTINGS):
    """Run a gesture over pointer samples [(x, y), ...]; first sample is pointer-down."""
    x0, y0 = samples[0]
    state = start_gesture(block, track_index, track_count, mode, x0, y0)
    for x, y in samples[1:]:
        state = apply_delta(state, x, y, settings)
    return state


class TestEditorSettings:
    def test_px_ms_mapping(self):
        assert SETTINGS.px_to_ms(100) == 1000
        assert SETTINGS.ms_to_px(1000) == 100

    def test_zoom_scales_mapping(self):
        settings = EditorSettings(zoom=2.0)
        assert settings.px_to_ms(100) == 500

    def test_invalid_values(self):
        with pytest.raises(ValueError):
            EditorSettings(px_per_second=0)
        with pytest.raises(ValueError):
            EditorSettings(track_shift_conflict="merge")


class TestResize:
    def test_resize_right_extends_duration(self):
        state = _drag(make_block("a", 1000, 2000), DragMode.RESIZE_RIGHT, [(0, 0), (50, 0)])
        assert commit_time(state) == (1000, 2500)

    def test_resize_right_floor(self):
        state = _drag(make_block("a", 0, 1500), DragMode.RESIZE_RIGHT, [(0, 0), (-500, 0)])
        assert state.dur == 1000

    def test_resize_right_short_block_jumps_to_floor(self):
        state = _drag(make_block("a", 0, 10), DragMode.RESIZE_RIGHT, [(0, 0), (1, 0)])
        assert state.dur == 1000

    def test_resize_left_keeps_end_fixed(self):
        state = _drag(make_block("a", 2000, 3000), DragMode.RESIZE_LEFT, [(0, 0), (-50, 0)])
        assert (state.start, state.dur, state.end) == (1500, 3500, 5000)

    def test_resize_left_cannot_cross_min_duration(self):
        state = _drag(make_block("a", 2000, 3000), DragMode.RESIZE_LEFT, [(0, 0), (500, 0)])
        assert state.start == 4000
        assert state.dur == 1000
        assert state.end == 5000

    def test_resize_left_clamps_at_zero(self):
        state = _drag(make_block("a", 500, 2000), DragMode.RESIZE_LEFT, [(0, 0), (-200, 0)])
        assert state.start == 0
        assert state.end == 2500

    def test_reversal_after_clamp_responds_immediately(self):
        # Pushed 100 px past zero, then back 10 px: start moves off zero at once.
        state = _drag(
            make_block("a", 500, 2000), DragMode.RESIZE_LEFT,
            [(0, 0), (-150, 0), (-140, 0)],
        )
        assert state.start == 100
        assert state.end == 2500


class TestMove:
    def test_move_preserves_duration(self):
        state = _drag(make_block("a", 1000, 2000), DragMode.MOVE_RIGHT, [(0, 0), (50, 0), (100, 0)])
        assert (state.start, state.dur) == (2000, 2000)

    def test_move_left_clamps_at_zero(self):
        state = _drag(make_block("a", 1000, 2000), DragMode.MOVE_LEFT, [(0, 0), (-500, 0)])
        assert (state.start, state.dur) == (0, 2000)

    def test_unchanged_gesture(self):
        state = _drag(make_block("a", 1000, 2000), DragMode.MOVE_RIGHT, [(0, 0), (50, 0), (0, 0)])
        assert not state.changed


class TestTrackShift:
    def test_below_threshold_no_target(self):
        state = _drag(make_block("a", 0, 1000), DragMode.SHIFT_TRACK_DOWN, [(0, 0), (0, 20)], track_index=1)
        assert state.shift_target is None

    def test_down_past_threshold(self):
        state = _drag(make_block("a", 0, 1000), DragMode.SHIFT_TRACK_DOWN, [(0, 0), (0, 26)], track_index=1)
        assert state.shift_target == 2

    def test_up_past_threshold(self):
        state = _drag(make_block("a", 0, 1000), DragMode.SHIFT_TRACK_UP, [(0, 0), (0, -30)], track_index=1)
        assert state.shift_target == 0

    def test_no_track_above_first(self):
        state = _drag(make_block("a", 0, 1000), DragMode.SHIFT_TRACK_UP, [(0, 0), (0, -100)], track_index=0)
        assert state.shift_target is None

    def test_no_track_below_last(self):
        state = _drag(
            make_block("a", 0, 1000), DragMode.SHIFT_TRACK_DOWN, [(0, 0), (0, 100)],
            track_index=4, track_count=5,
        )
        assert state.shift_target is None

    def test_vertical_gesture_leaves_time_alone(self):
        state = _drag(make_block("a", 700, 1000), DragMode.SHIFT_TRACK_DOWN, [(0, 0), (80, 40)], track_index=0)
        assert (state.start, state.dur) == (700, 1000)


class TestBlockExtent:
    def test_min_width_floor(self):
        assert block_extent_px(0, 10, SETTINGS) == (0, 25)

    def test_regular_width(self):
        assert block_extent_px(1000, 2000, SETTINGS) == (100, 200)


class TestGestureController:
    def _setup(self):
        timeline = Timeline(track_count=3)
        timeline.add_or_update(make_block("a", 0, 2000))
        timeline.add_or_update(make_block("b", 1000, 2000))
        timeline.add_or_update(make_block("c", 5000, 1000))
        timeline.dirty = False
        commits = []
        controller = GestureController(timeline, on_commit=commits.append)
        return timeline, controller, commits

    def test_store_untouched_until_end(self):
        timeline, controller, commits = self._setup()
        controller.begin("c", DragMode.MOVE_RIGHT, 0, 0)
        controller.move(100, 0)
        assert timeline.find("c")[1].time.start == 5000
        assert controller.preview_extent() == (600, 100)

        assert controller.end()
        block = timeline.find("c")[1]
        assert block.time.start == 6000
        assert block.parameters["startTime"] == 6000
        assert timeline.dirty
        assert commits == ["c"]
        assert not controller.is_dragging

    def test_resize_commit_applies_floor(self):
        timeline, controller, _ = self._setup()
        timeline.apply_time_override("c", 5000, 10)
        controller.begin("c", DragMode.RESIZE_RIGHT, 0, 0)
        controller.move(1, 0)
        controller.end()
        assert timeline.find("c")[1].time.dur == 1000

    def test_unchanged_gesture_commits_nothing(self):
        timeline, controller, commits = self._setup()
        controller.begin("c", DragMode.MOVE_RIGHT, 0, 0)
        controller.move(0, 0)
        assert not controller.end()
        assert commits == []
        assert not timeline.dirty

    def test_cancel_discards(self):
        timeline, controller, commits = self._setup()
        controller.begin("c", DragMode.RESIZE_RIGHT, 0, 0)
        controller.move(300, 0)
        controller.cancel()
        assert not controller.is_dragging
        assert not controller.end()
        assert timeline.find("c")[1].time.dur == 1000
        assert commits == []

    def test_track_shift_moves_block_and_ends_gesture(self):
        timeline, controller, commits = self._setup()
        controller.begin("c", DragMode.SHIFT_TRACK_DOWN, 0, 0)
        controller.move(0, 10)
        assert timeline.find("c")[0] == 0
        controller.move(0, 30)
        assert timeline.find("c")[0] == 1
        assert not controller.is_dragging
        assert commits == ["c"]

    def test_track_shift_rejected_on_conflict(self):
        timeline, controller, commits = self._setup()
        controller.begin("b", DragMode.SHIFT_TRACK_UP, 0, 0)
        controller.move(0, -30)
        assert timeline.find("b")[0] == 1
        assert commits == []
        assert not controller.is_dragging

    def test_track_shift_allow_policy_overlaps(self):
        timeline, controller, commits = self._setup()
        controller.settings = EditorSettings(track_shift_conflict="allow")
        controller.begin("b", DragMode.SHIFT_TRACK_UP, 0, 0)
        controller.move(0, -30)
        assert timeline.find("b")[0] == 0
        assert timeline.find_overlaps() == [(0, "a", "b")]

    def test_begin_missing_block(self):
        _, controller, _ = self._setup()
        assert controller.begin("zzz", DragMode.MOVE_LEFT, 0, 0) is None
        assert not controller.is_dragging

    def test_begin_twice_raises(self):
        _, controller, _ = self._setup()
        controller.begin("a", DragMode.MOVE_LEFT, 0, 0)
        with pytest.raises(RuntimeError, match="already in progress"):
            controller.begin("b", DragMode.MOVE_LEFT, 0, 0)

    def test_move_while_idle_is_ignored(self):
        _, controller, _ = self._setup()
        assert controller.move(10, 10) is None
