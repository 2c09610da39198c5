import pytest

from fractgen.core.math_functions import IterationResult
from fractgen.rendering.coloring import (
    BLACK,
    ColorStop,
    Palette,
    color_for,
    format_color,
    parse_color,
    smooth_iteration_value,
)

RED = (255, 0, 0)
GREEN = (0, 255, 0)
BLUE = (0, 0, 255)
YELLOW = (255, 255, 0)


class TestParseColor:
    def test_hex(self):
        assert parse_color("#ff8000") == (255, 128, 0)
        assert parse_color("00ff7f") == (0, 255, 127)

    def test_tuple(self):
        assert parse_color([1, 2, 3]) == (1, 2, 3)

    @pytest.mark.parametrize("bad", ["#fff", "#gggggg", (256, 0, 0), (0, -1, 0), (1, 2), (1.0, 2, 3), 42])
    def test_invalid(self, bad):
        with pytest.raises(ValueError):
            parse_color(bad)

    def test_format(self):
        assert format_color((255, 128, 0)) == "#ff8000"


class TestColorStop:
    def test_zero_length_defaults(self):
        assert ColorStop(RED, 0).length == 256

    def test_negative_length(self):
        with pytest.raises(ValueError):
            ColorStop(RED, -1)


class TestPalette:
    def test_needs_two_stops(self):
        with pytest.raises(ValueError):
            Palette([RED])

    def test_repeat_count(self, patchwork_palette):
        with pytest.raises(ValueError):
            patchwork_palette.replace(repeat_count=0)
        doubled = patchwork_palette.replace(repeat_count=2)
        assert len(doubled.expanded_stops) == 8
        assert doubled.total_length == 2 * patchwork_palette.total_length == 1536

    def test_negative_explicit_length_is_unset(self, patchwork_palette):
        assert patchwork_palette.replace(explicit_length=-5).explicit_length == 0

    def test_stop_coercion(self):
        palette = Palette([{"color": "#ff0000", "length": 10}, ("#00ff00", 20), BLUE])
        assert [s.length for s in palette.stops] == [10, 20, 256]

    def test_equality(self, patchwork_palette):
        assert patchwork_palette == patchwork_palette.replace(name="Other")
        assert patchwork_palette != patchwork_palette.replace(reverse=True)


class TestColorFor:
    def test_interpolates_into_last_segment(self, patchwork_palette):
        # 880/1000 of 768 = 675.84, 28% of the way from yellow back to red
        assert color_for(880, patchwork_palette, 1000) == (255, 184, 0, 255)

    def test_segment_starts(self, patchwork_palette):
        assert color_for(0, patchwork_palette, 768) == RED + (255,)
        assert color_for(256, patchwork_palette, 768) == GREEN + (255,)
        assert color_for(384, patchwork_palette, 768) == BLUE + (255,)
        assert color_for(640, patchwork_palette, 768) == YELLOW + (255,)

    def test_midpoint(self, patchwork_palette):
        assert color_for(128, patchwork_palette, 768) == (128, 128, 0, 255)

    def test_black_at_cap(self, patchwork_palette):
        assert color_for(1000, patchwork_palette, 1000) == BLACK
        assert color_for(1000.5, patchwork_palette, 1000) == BLACK
        assert color_for(999.99, patchwork_palette, 1000) != BLACK

    def test_alpha_is_opaque(self, patchwork_palette):
        for value in range(0, 1000, 37):
            assert color_for(value, patchwork_palette, 1000)[3] == 255

    def test_hard_stops_only_use_stop_colors(self, patchwork_palette):
        hard = patchwork_palette.replace(hard_stops=True)
        stop_colors = {s.color + (255,) for s in hard.stops}
        for value in range(0, 768):
            assert color_for(value + 0.5, hard, 768) in stop_colors
        assert color_for(300, hard, 768) == GREEN + (255,)

    def test_explicit_length_cycles(self, patchwork_palette):
        cycled = patchwork_palette.replace(explicit_length=100)
        assert color_for(150, cycled, 1000) == color_for(50, cycled, 1000)
        assert color_for(50, cycled, 1000) == color_for(384, patchwork_palette, 768)

    def test_reverse(self, patchwork_palette):
        reversed_palette = patchwork_palette.replace(reverse=True)
        assert color_for(880, reversed_palette, 1000) == color_for(120, patchwork_palette, 1000)


class TestSmoothIterationValue:
    def test_not_escaped(self):
        assert smooth_iteration_value(IterationResult(100, 0.2), 100, 256.0) == 100.0

    def test_escaped_is_fractional(self):
        value = smooth_iteration_value(IterationResult(4, 9410.0), 100, 256.0)
        assert 3.0 < value < 4.0

    def test_near_bailout_is_not_corrected(self):
        assert smooth_iteration_value(IterationResult(5, 200.0), 100, 256.0) == 5.0
        assert smooth_iteration_value(IterationResult(5, 0.5), 100, 256.0) == 5.0
        assert smooth_iteration_value(IterationResult(5, 300.0), 100, 1.0) == 5.0

    def test_never_negative(self):
        assert smooth_iteration_value(IterationResult(1, 1e300), 100, 256.0) == 0.0

    def test_capped_point_is_not_corrected(self):
        result = IterationResult(100, 9410.0)
        assert not result.escaped(100)
        assert smooth_iteration_value(result, 100, 256.0) == 100.0


def test_from_matplotlib():
    pytest.importorskip("matplotlib")
    palette = Palette.from_matplotlib("viridis", n_samples=8, length=32)
    assert len(palette.stops) == 8
    assert palette.total_length == 256
    assert palette.name == "From_viridis"
