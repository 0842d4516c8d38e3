import math

import pytest

from transform_state import (
    MAX_ROTATION, MAX_SCALE, MIN_ROTATION, MIN_SCALE,
    TransformModel, TransformState, compute_default_scale,
    format_position, format_rotation, format_scale, transform_from_mapping,
)


def test_default_scale_without_viewport_falls_back():
    assert compute_default_scale() == 0.5
    assert compute_default_scale(1200, None) == 0.5


def test_default_scale_for_large_viewport():
    # Height dominates: 1197 / 1600
    assert compute_default_scale(2560, 1600) == pytest.approx(1197 / 1600)


def test_default_scale_caps_at_one():
    assert compute_default_scale(1920, 1080) == 1.0
    # Small viewports are treated as 800 wide/high
    assert compute_default_scale(100, 100) == 1.0


@pytest.mark.parametrize("width,height", [(1, 1), (800, 800), (1366, 768), (3840, 2160), (10000, 10000)])
def test_default_scale_bounds(width, height):
    scale = compute_default_scale(width, height)
    assert 0 < scale <= 1


def test_scale_is_clamped():
    model = TransformModel()
    assert model.set_scale(0) == MIN_SCALE
    assert model.set_scale(10) == MAX_SCALE
    assert model.set_scale(-5) == MIN_SCALE
    assert model.set_scale(1.25) == 1.25
    assert model.set_scale(float("inf")) == MAX_SCALE
    assert model.set_scale(float("-inf")) == MIN_SCALE


def test_nan_scale_keeps_current_value():
    model = TransformModel()
    model.set_scale(1.5)
    assert model.set_scale(float("nan")) == 1.5


@pytest.mark.parametrize("value,expected", [
    (0, 0),
    (45.5, 45.5),
    (180, 180),
    (-180, -180),
    (190, -170),
    (-190, 170),
    (725, 5),
    (-725, -5),
    (float("inf"), 180),
    (float("-inf"), -180),
])
def test_rotation_normalization(value, expected):
    model = TransformModel()
    assert model.set_rotation(value) == pytest.approx(expected)


def test_clamping_is_total():
    model = TransformModel()
    for value in (-1e12, -361.5, -3, -0.0, 0.05, 2.999, 3.0001, 359.99, 1e300):
        assert MIN_SCALE <= model.set_scale(value) <= MAX_SCALE
        assert MIN_ROTATION <= model.set_rotation(value) <= MAX_ROTATION


def test_position_is_unconstrained():
    model = TransformModel()
    assert model.set_position(5000, -9000) == (5000, -9000)
    assert model.state.x == 5000


def test_non_finite_position_keeps_coordinate():
    model = TransformModel()
    model.set_position(10, 20)
    assert model.set_position(float("nan"), 30) == (10, 30)
    assert model.set_position(40, float("inf")) == (40, 30)


@pytest.mark.parametrize("value", [None, "", "abc", object()])
def test_malformed_input_keeps_current_value(value):
    model = TransformModel()
    model.set_scale(1.25)
    model.set_rotation(30)
    model.set_position(10, 20)
    assert model.set_scale(value) == 1.25
    assert model.set_rotation(value) == 30
    assert model.set_position(value, 25) == (10, 25)
    assert model.set_scale("2.5") == 2.5


def test_reset_is_idempotent():
    model = TransformModel(default_scale=lambda: 0.75)
    model.set_position(100, 100)
    model.set_rotation(30)
    first = model.reset()
    second = model.reset()
    assert first == second == TransformState(x=0.0, y=0.0, scale=0.75, rotation=0.0)


def test_restore_clamps_saved_values():
    model = TransformModel()
    state = model.restore(TransformState(x=12.5, y=-3, scale=9, rotation=270))
    assert state == TransformState(x=12.5, y=-3, scale=MAX_SCALE, rotation=-90)


def test_nudge_and_zoom_are_relative():
    model = TransformModel(default_scale=lambda: 1.0)
    model.set_position(10, 10)
    assert model.nudge(5, -5) == (15, 5)
    assert model.zoom_by(0.05) == pytest.approx(1.05)
    model.set_scale(MAX_SCALE)
    assert model.zoom_by(0.05) == MAX_SCALE


def test_transform_from_mapping_fills_defaults():
    assert transform_from_mapping(None, 0.6) == TransformState(scale=0.6)
    assert transform_from_mapping({"x": 3, "scale": 0}, 0.6) == TransformState(x=3.0, scale=0.6)
    assert transform_from_mapping({"x": 1, "y": 2, "scale": 1.5, "rotation": -12.25}, 0.6) == \
        TransformState(x=1.0, y=2.0, scale=1.5, rotation=-12.25)


def test_snapshot_is_immutable():
    model = TransformModel()
    snapshot = model.snapshot()
    model.set_position(50, 50)
    assert snapshot.x == 0
    with pytest.raises(Exception):
        snapshot.x = 1


def test_fractional_rotation_is_rounded_only_for_display():
    model = TransformModel(default_scale=lambda: 0.456)
    model.set_rotation(12.6)
    model.set_position(10.4, -3.6)
    state = model.state
    assert state.rotation == 12.6
    assert format_rotation(state) == "13°"
    assert format_scale(state) == "46%"
    assert format_position(state) == "X: 10, Y: -4"
    assert state.to_dict() == {"x": 10.4, "y": -3.6, "scale": 0.456, "rotation": 12.6}
    assert not math.isnan(state.scale)
