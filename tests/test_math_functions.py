import pickle

import pytest

from fractgen.core.math_functions import (
    IterationResult,
    ViewWindow,
    julia,
    mandelbrot2,
    mandelbrot3,
    mandelbrot4,
)
from fractgen.core.precision import FLOAT_NUMBERS, MpNumbers


class TestViewWindow:
    def test_derived_bounds(self):
        view = ViewWindow(0.0, 0.0, 4.0, 4, 2)
        assert view.aspect == 2.0
        assert view.diameter_y == 2.0
        assert view.get_bounds() == (-2.0, 2.0, -1.0, 1.0)

    def test_pixel_mapping_inverts_y(self):
        view = ViewWindow(0.0, 0.0, 4.0, 4, 2)
        assert view.pixel_to_complex(0, 0) == (-2.0, 1.0)
        assert view.pixel_to_complex(4, 2) == (2.0, -1.0)
        assert view.pixel_to_complex(2, 1) == (0.0, 0.0)

    def test_center_pixel_maps_to_center(self):
        view = ViewWindow(-0.7, 0.0, 4.0, 100, 100)
        cx, cy = view.pixel_to_complex(50, 50)
        assert cx == pytest.approx(-0.7)
        assert cy == 0.0

    @pytest.mark.parametrize("kwargs", [
        dict(diameter_x=0.0),
        dict(diameter_x=-1.0),
        dict(image_width=0),
        dict(image_height=-5),
        dict(image_width=10.5),
    ])
    def test_invalid(self, kwargs):
        params = dict(center_x=0.0, center_y=0.0, diameter_x=4.0, image_width=10, image_height=10)
        params.update(kwargs)
        with pytest.raises(ValueError):
            ViewWindow(**params)

    def test_deep_zoom_resolves_adjacent_pixels(self):
        center, diameter = "-1.7400000000000000000000001", "1e-20"
        shallow = ViewWindow(center, "0", diameter, 100, 100, FLOAT_NUMBERS)
        deep = ViewWindow(center, "0", diameter, 100, 100, MpNumbers(128))

        assert shallow.pixel_to_complex(0, 0)[0] == shallow.pixel_to_complex(1, 0)[0]
        assert deep.pixel_to_complex(0, 0)[0] < deep.pixel_to_complex(1, 0)[0]

    def test_with_numbers_and_for_image(self):
        view = ViewWindow(-0.5, 0.25, 3.0, 30, 20)
        deep = view.with_numbers(MpNumbers(128))
        assert deep.numbers == MpNumbers(128)
        assert float(deep.center_x) == -0.5
        resized = view.for_image(60, 20)
        assert resized.diameter_x == view.diameter_x
        assert resized.diameter_y == view.diameter_y / 2

    def test_pickle_keeps_every_digit(self):
        view = ViewWindow("-1.7400000000000000000000001", "0.0000000000000000000000003", "1e-20",
                          100, 80, MpNumbers(128))
        restored = pickle.loads(pickle.dumps(view))
        assert restored == view
        assert restored.numbers == view.numbers
        assert restored.pixel_to_complex(17, 33) == view.pixel_to_complex(17, 33)
        assert restored.max_y == view.max_y

    def test_pickle_float_view(self):
        view = ViewWindow(-0.7, 0.1, 3.0, 40, 30)
        restored = pickle.loads(pickle.dumps(view))
        assert restored == view
        assert restored.get_bounds() == view.get_bounds()


class TestIteration:
    def test_inside_cardioid_hits_cap(self):
        assert mandelbrot2(-0.7, 0.0, 256.0, 100).iterations == 100
        assert mandelbrot2(0.0, 0.0, 256.0, 100) == IterationResult(100, 0.0)

    def test_escape_on_equal_bailout_continues(self):
        # |z|^2 == bailout still satisfies the continue condition
        assert mandelbrot2(2.0, 0.0, 4.0, 100) == IterationResult(2, 36.0)
        assert mandelbrot2(2.0, 0.0, 3.9, 100) == IterationResult(1, 4.0)

    def test_known_escape(self):
        assert mandelbrot2(1.0, 1.0, 256.0, 100) == IterationResult(4, 9410.0)

    def test_higher_powers(self):
        assert mandelbrot3(1.0, 0.0, 256.0, 100) == IterationResult(4, 532900.0)
        assert mandelbrot4(1.0, 0.0, 256.0, 100) == IterationResult(3, 289.0)
        # z -> z^3 + i cycles between i and 0
        assert mandelbrot3(0.0, 1.0, 256.0, 50).iterations == 50

    def test_julia(self):
        assert julia(2.0, 0.0, 256.0, 100, 0.0, 0.0) == IterationResult(3, 65536.0)
        assert julia(0.0, 0.0, 256.0, 100, 0.0, 0.0).iterations == 100

    @pytest.mark.parametrize("func", [mandelbrot2, mandelbrot3, mandelbrot4])
    def test_zero_iterations(self, func):
        assert func(1.0, 1.0, 256.0, 0) == IterationResult(0, 0.0)
        assert julia(1.0, 1.0, 256.0, 0, 0.0, 0.0) == IterationResult(0, 0.0)

    def test_deep_and_float_agree(self):
        numbers = MpNumbers(128)
        bailout = numbers.from_native(256)
        for cx, cy in [(1.0, 1.0), (-0.7, 0.0), (2.0, 0.0), (0.5, 0.5)]:
            deep = mandelbrot2(numbers.from_native(cx), numbers.from_native(cy), bailout, 100)
            shallow = mandelbrot2(cx, cy, 256.0, 100)
            assert deep.iterations == shallow.iterations
            assert isinstance(deep.bailout_magnitude, float)
            assert deep.bailout_magnitude == pytest.approx(shallow.bailout_magnitude)

    def test_escaped(self):
        assert IterationResult(4, 9410.0).escaped(100)
        assert not IterationResult(100, 0.1).escaped(100)
