import pickle

import mpmath
import pytest

from fractgen.core.precision import (
    DEFAULT_PRECISION_BITS,
    FLOAT_NUMBERS,
    FloatNumbers,
    MpNumbers,
    digits_for_bits,
    select_number_system,
)


class TestSelectNumberSystem:
    def test_standard_aliases(self):
        for name in ("standard", "double", "float", " Standard "):
            assert select_number_system(name) is FLOAT_NUMBERS

    def test_deep(self):
        numbers = select_number_system("deep")
        assert isinstance(numbers, MpNumbers)
        assert numbers.bits == DEFAULT_PRECISION_BITS

    def test_explicit_bits(self):
        assert select_number_system(200).bits == 200
        assert select_number_system("96").bits == 96

    def test_auto_uses_diameter(self):
        assert select_number_system("auto", 4.0) is FLOAT_NUMBERS
        assert select_number_system("auto", None) is FLOAT_NUMBERS
        assert isinstance(select_number_system("auto", 1e-14), MpNumbers)
        assert isinstance(select_number_system("auto", "1e-30"), MpNumbers)

    @pytest.mark.parametrize("bad", ["quad", "", True, 1.5, None])
    def test_invalid(self, bad):
        with pytest.raises(ValueError):
            select_number_system(bad)


class TestMpNumbers:
    def test_minimum_bits(self):
        with pytest.raises(ValueError):
            MpNumbers(40)

    def test_private_context(self):
        before = mpmath.mp.prec
        numbers = MpNumbers(300)
        third = numbers.from_native(1) / 3
        assert mpmath.mp.prec == before
        assert numbers.format(third, 50).startswith("0.33333333333333333333333333333333")

    def test_string_input_keeps_digits(self):
        numbers = MpNumbers(128)
        value = numbers.from_native(" 0.1000000000000000000001 ")
        assert value - numbers.from_native("0.1") > 0
        assert numbers.to_native(value) == 0.1

    def test_equality(self):
        assert MpNumbers(128) == MpNumbers(128)
        assert MpNumbers(128) != MpNumbers(256)
        assert FloatNumbers() == FLOAT_NUMBERS
        assert len({MpNumbers(128), MpNumbers(128), FLOAT_NUMBERS}) == 2

    def test_pickle_rebuilds_context(self):
        numbers = pickle.loads(pickle.dumps(MpNumbers(200)))
        assert numbers == MpNumbers(200)
        assert numbers.ctx.prec == 200

    def test_portable_values_are_exact(self):
        numbers = MpNumbers(256)
        value = numbers.from_native("1") / 3
        restored = numbers.from_portable(pickle.loads(pickle.dumps(numbers.to_portable(value))))
        assert restored == value
        assert numbers.format(restored, 70) == numbers.format(value, 70)


def test_float_numbers():
    assert FLOAT_NUMBERS.bits == 53
    assert FLOAT_NUMBERS.from_native("1.5") == 1.5
    assert FLOAT_NUMBERS.format(0.5) == "0.5"


def test_digits_for_bits():
    assert digits_for_bits(53) == 15
    assert digits_for_bits(128) == 38
