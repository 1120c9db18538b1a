"""Unit tests for the film emulation filter and its blend helpers."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

import numpy as np
import pytest

from disposable_camera.modules.Camera.pipelines.blend import (
    composite,
    hard_light,
    overlay,
    soft_light,
    to_unit_float,
)
from disposable_camera.modules.Camera.pipelines.film_filter import (
    STAGE_ORDER,
    FilmEmulationFilter,
    kelvin_to_rgb,
    monotone_curve,
    white_balance_gains,
)
from disposable_camera.modules.Camera.pipelines.filter_params import MATTE, VIVID, get_preset


def _gradient(height: int = 48, width: int = 64) -> np.ndarray:
    ramp = np.linspace(0, 255, width, dtype=np.float32)
    image = np.stack([np.tile(ramp, (height, 1))] * 3, axis=2)
    image[..., 1] = image[..., 1][::-1]
    return image.astype(np.uint8)


class TestApply:
    """Shape, dtype and determinism of the full chain."""

    def test_uint8_in_uint8_out(self):
        frame = _gradient()
        result = FilmEmulationFilter(seed=1).apply(frame)

        assert result.shape == frame.shape
        assert result.dtype == np.uint8
        assert not np.array_equal(result, frame)

    def test_float_input_stays_in_unit_range(self):
        frame = _gradient().astype(np.float32) / 255.0
        result = FilmEmulationFilter(seed=1).apply(frame)

        assert result.dtype == np.float32
        assert result.min() >= 0.0
        assert result.max() <= 1.0

    def test_alpha_channel_is_preserved(self):
        rgba = np.dstack([_gradient(), np.full((48, 64), 77, dtype=np.uint8)])
        result = FilmEmulationFilter(seed=1).apply(rgba)

        assert result.shape == rgba.shape
        assert np.all(result[..., 3] == 77)

    def test_same_seed_same_output(self):
        frame = _gradient()
        first = FilmEmulationFilter(seed=42).apply(frame)
        second = FilmEmulationFilter(seed=42).apply(frame)
        np.testing.assert_array_equal(first, second)

    def test_injected_generator_is_used(self):
        frame = _gradient()
        a = FilmEmulationFilter(rng=np.random.default_rng(5)).apply(frame)
        b = FilmEmulationFilter(seed=5).apply(frame)
        np.testing.assert_array_equal(a, b)

    def test_input_is_not_mutated(self):
        frame = _gradient()
        original = frame.copy()
        FilmEmulationFilter(seed=1).apply(frame)
        np.testing.assert_array_equal(frame, original)

    @pytest.mark.parametrize("shape", [(10, 10), (10, 10, 2), (0, 10, 3)])
    def test_unsupported_shapes_pass_through(self, shape):
        frame = np.zeros(shape, dtype=np.uint8)
        result = FilmEmulationFilter(seed=1).apply(frame)

        assert result.shape == frame.shape
        assert result is not frame

    def test_stages_run_in_order(self):
        film = FilmEmulationFilter(seed=1)
        calls = []
        for name in STAGE_ORDER:
            def _identity(image, _name=name):
                calls.append(_name)
                return image
            setattr(film, name, _identity)

        film.apply(_gradient())

        assert calls == list(STAGE_ORDER)


class TestStageFailure:
    """A failing stage is skipped and its input carries on."""

    def _reference(self, frame: np.ndarray) -> np.ndarray:
        film = FilmEmulationFilter(seed=9)
        film.grain = lambda image: image
        return film.apply(frame)

    def test_raising_stage_is_skipped(self):
        frame = _gradient()
        film = FilmEmulationFilter(seed=9)
        film.grain = MagicMock(side_effect=RuntimeError("noise generator exploded"))

        result = film.apply(frame)

        film.grain.assert_called_once()
        np.testing.assert_array_equal(result, self._reference(frame))

    def test_non_finite_output_is_skipped(self):
        frame = _gradient()
        film = FilmEmulationFilter(seed=9)
        film.grain = lambda image: np.full_like(image, np.nan)

        np.testing.assert_array_equal(film.apply(frame), self._reference(frame))

    def test_wrong_shape_output_is_skipped(self):
        frame = _gradient()
        film = FilmEmulationFilter(seed=9)
        film.grain = lambda image: image[:10]

        np.testing.assert_array_equal(film.apply(frame), self._reference(frame))

    def test_failure_is_logged_as_warning(self, caplog):
        film = FilmEmulationFilter(seed=9)
        film.vignette = MagicMock(side_effect=ValueError("bad radius"))

        with caplog.at_level(logging.WARNING, logger="disposable_camera"):
            film.apply(_gradient())

        assert "vignette" in caplog.text
        assert "bad radius" in caplog.text


class TestStages:

    def test_vignette_darkens_corners(self):
        film = FilmEmulationFilter(seed=1)
        flat = np.full((101, 101, 3), 0.8, dtype=np.float32)

        result = film.vignette(flat)

        assert result[50, 50, 0] == pytest.approx(0.8, abs=1e-3)
        assert result[0, 0, 0] < result[50, 50, 0]

    def test_tone_curve_lifts_blacks(self):
        film = FilmEmulationFilter(MATTE, seed=1)
        black = np.zeros((4, 4, 3), dtype=np.float32)

        assert film.tone_curve(black)[0, 0, 0] == pytest.approx(MATTE.tone_curve[0][1], abs=1e-3)

    def test_white_balance_warms(self):
        film = FilmEmulationFilter(seed=1)
        gray = np.full((2, 2, 3), 0.5, dtype=np.float32)

        warmed = film.white_balance(gray)

        assert warmed[0, 0, 0] > warmed[0, 0, 2]

    def test_grain_changes_pixels(self):
        film = FilmEmulationFilter(VIVID, seed=3)
        gray = np.full((16, 16, 3), 0.5, dtype=np.float32)

        grained = film.grain(gray)

        assert grained.shape == gray.shape
        assert np.std(grained) > 0

    def test_soft_focus_keeps_flat_image_flat(self):
        film = FilmEmulationFilter(seed=1)
        flat = np.full((20, 20, 3), 0.4, dtype=np.float32)

        result = film.soft_focus(flat)

        assert np.allclose(result, result[0, 0])


class TestNumericHelpers:

    def test_monotone_curve_hits_control_points(self):
        points = MATTE.tone_curve
        xs = np.array([p[0] for p in points])
        ys = monotone_curve(points, xs)
        np.testing.assert_allclose(ys, [p[1] for p in points], atol=1e-9)

    def test_monotone_curve_is_monotone(self):
        samples = np.linspace(0.0, 1.0, 500)
        ys = monotone_curve(VIVID.tone_curve, samples)
        assert np.all(np.diff(ys) >= -1e-12)

    def test_monotone_curve_rejects_unsorted_points(self):
        with pytest.raises(ValueError):
            monotone_curve(((0.5, 0.1), (0.2, 0.3)), np.array([0.1]))

    def test_kelvin_to_rgb_daylight_is_near_white(self):
        rgb = kelvin_to_rgb(6500)
        assert np.all(rgb > 0.95)

    def test_warmer_target_boosts_red_cuts_blue(self):
        gains = white_balance_gains((6500.0, 0.0), (7200.0, 0.0))
        assert gains[1] == pytest.approx(1.0)
        assert gains[0] > 1.0
        assert gains[2] < 1.0

    def test_tint_moves_green(self):
        neutral = white_balance_gains((6500.0, 0.0), (6500.0, 0.0))
        tinted = white_balance_gains((6500.0, 0.0), (6500.0, 50.0))
        assert tinted[1] < neutral[1]


class TestBlendModes:

    def test_hard_light_extremes(self):
        base = np.array([0.5], dtype=np.float32)
        assert hard_light(base, np.array([0.0]))[0] == pytest.approx(0.0)
        assert hard_light(base, np.array([1.0]))[0] == pytest.approx(1.0)
        assert hard_light(base, np.array([0.5]))[0] == pytest.approx(0.5)

    def test_overlay_swaps_roles(self):
        a = np.array([0.2, 0.7], dtype=np.float32)
        b = np.array([0.9, 0.1], dtype=np.float32)
        np.testing.assert_allclose(overlay(a, b), hard_light(b, a))

    def test_soft_light_neutral_layer(self):
        base = np.linspace(0, 1, 11, dtype=np.float32)
        np.testing.assert_allclose(soft_light(base, np.full_like(base, 0.5)), base, atol=1e-6)

    def test_composite_alpha(self):
        base = np.zeros((2, 2, 3), dtype=np.float32)
        layer = np.ones((2, 2, 3), dtype=np.float32)
        alpha = np.array([[0.0, 0.25], [0.5, 1.0]], dtype=np.float32)

        result = composite(base, layer, alpha)

        np.testing.assert_allclose(result[..., 0], alpha)

    def test_to_unit_float_scales_uint8(self):
        unit, dtype = to_unit_float(np.array([0, 255], dtype=np.uint8))
        assert dtype == np.uint8
        np.testing.assert_allclose(unit, [0.0, 1.0])


class TestPresets:

    def test_lookup_is_case_insensitive(self):
        assert get_preset(" Vivid ") is VIVID
        assert get_preset("matte") is MATTE

    def test_unknown_preset(self):
        with pytest.raises(ValueError):
            get_preset("sepia")

    def test_grain_alpha(self):
        assert MATTE.grain_intensity == pytest.approx(0.3)
        assert VIVID.grain_intensity == pytest.approx(1.0)
