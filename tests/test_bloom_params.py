# -*- coding: utf-8 -*-
"""
Test calculator tham số Bloom filter.
"""

import math

import pytest

from bloomutils.bloom.bloom_params import (
    calculate,
    calculate_for_bits,
    measure_actual,
    optimal_num_bits,
    theoretical_fpr,
)
from bloomutils.config import SizingDefaults
from bloomutils.errors import InvalidArgument


def test_reference_values_for_100k_items():
    res = calculate(100_000, false_positive_rate=0.001)
    p = res.params
    assert p.num_bits == pytest.approx(1_437_758.8, rel=1e-6)
    assert p.bits_per_item == pytest.approx(14.3776, rel=1e-4)
    assert p.num_hashes == pytest.approx(10.06, abs=0.01)
    assert p.hash_to_bits_ratio == 0.7

    a = res.actual
    assert a.num_hashes == 11
    # 1437759 bit -> 179720 byte -> 262144 byte
    assert a.num_bits == 262_144 * 8
    assert a.serialized_size == 262_144 + 3
    assert a.false_positive_rate == pytest.approx(theoretical_fpr(a.num_bits, 11, 100_000))
    assert a.false_positive_rate < 0.001


def test_default_false_positive_rate_is_two_percent():
    res = calculate(16_384)
    assert res.params.false_positive_rate == 0.02
    assert res.params.num_bits == pytest.approx(16_384 * math.log(50) / math.log(2) ** 2)


def test_explicit_num_hashes_wins_and_ratio_is_back_computed():
    res = calculate(1000, false_positive_rate=0.01, num_hashes=3)
    assert res.params.num_hashes == 3
    assert res.params.hash_to_bits_ratio == pytest.approx(3 / res.params.bits_per_item)
    assert res.actual.num_hashes == 3


def test_ratio_hint():
    res = calculate(1000, false_positive_rate=0.01, num_hashes_to_bits_per_item_ratio=0.5)
    assert res.params.num_hashes == pytest.approx(0.5 * res.params.bits_per_item)
    assert res.params.hash_to_bits_ratio == 0.5
    assert res.actual.num_hashes == math.ceil(res.params.num_hashes)


def test_explicit_num_bits_without_hint_uses_optimal_k():
    res = calculate(1000, num_bits=10_000)
    assert res.params.num_bits == 10_000
    assert res.params.bits_per_item == 10
    assert res.params.num_hashes == pytest.approx(10 * math.log(2))
    assert res.params.hash_to_bits_ratio == pytest.approx(math.log(2))
    assert res.actual.num_hashes == 7
    assert res.actual.num_bits == 2048 * 8


def test_different_rates_can_share_one_filter():
    loose = calculate(1000, false_positive_rate=0.01)
    tight = calculate(1000, false_positive_rate=0.001)
    assert loose.params.num_bits < tight.params.num_bits
    assert loose.actual.num_bits == tight.actual.num_bits == 16_384


def test_decreasing_rate_never_decreases_bits():
    rates = [0.5, 0.2, 0.1, 0.05, 0.02, 0.01, 0.001, 1e-4, 1e-6]
    bits = [calculate(5000, false_positive_rate=p).params.num_bits for p in rates]
    actual = [calculate(5000, false_positive_rate=p).actual.num_bits for p in rates]
    assert bits == sorted(bits)
    assert actual == sorted(actual)


def test_doubling_items_doubles_bits():
    for p in (0.1, 0.02, 0.001):
        single = optimal_num_bits(10_000, p)
        double = optimal_num_bits(20_000, p)
        assert double == pytest.approx(2 * single)
        assert calculate(20_000, false_positive_rate=p).params.num_bits == pytest.approx(double)


def test_calculate_for_bits_defaults():
    res = calculate_for_bits()
    assert res.params.num_bits == 131_072
    assert res.params.num_hashes == 6
    assert res.params.num_items == 16_384
    assert res.params.hash_to_bits_ratio == pytest.approx(0.75)
    assert res.actual.num_bits == 131_072
    assert res.actual.serialized_size == 16_387
    assert res.actual.false_positive_rate == pytest.approx(0.0216, abs=5e-4)


def test_calculate_for_bits_custom_defaults():
    defaults = SizingDefaults(num_bits=80_000, num_hashes=5.7)
    res = calculate_for_bits(defaults=defaults)
    assert res.params.num_items == 10_000
    assert res.actual.num_hashes == 6
    assert res.actual.num_bits == 16_384 * 8


def test_tiny_filter_is_at_least_one_byte():
    res = calculate(1, false_positive_rate=0.5)
    assert res.actual.num_bits == 8
    assert res.actual.serialized_size == 4


def test_as_dict_keys_and_aliases():
    d = calculate(100, false_positive_rate=0.05).as_dict()
    assert d["m"] == d["num_bits"]
    assert d["n"] == d["num_items"] == 100
    assert d["k"] == d["num_hashes"]
    assert d["p"] == d["fp_rate"] == 0.05
    assert d["m/n"] == d["num_bits_per_item"]
    assert d["actual_m"] == d["actual_num_bits"]
    assert d["actual_k"] == d["actual_num_hashes"]
    assert d["actual_p"] == d["actual_fp_rate"]
    assert d["actual_bloom_size"] == d["actual_m"] // 8 + 3


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(num_items=None),
        dict(num_items=0),
        dict(num_items=-5),
        dict(num_items=10.5),
        dict(num_items=True),
        dict(num_items=100, false_positive_rate=0),
        dict(num_items=100, false_positive_rate=0.51),
        dict(num_items=100, false_positive_rate=1.5),
        dict(num_items=100, false_positive_rate=float("nan")),
        dict(num_items=100, num_bits=0),
        dict(num_items=100, num_hashes=-1),
        dict(num_items=100, num_hashes_to_bits_per_item_ratio=0),
        dict(num_items=100, num_hashes=3, num_hashes_to_bits_per_item_ratio=0.7),
    ],
)
def test_invalid_arguments(kwargs):
    with pytest.raises(InvalidArgument):
        calculate(**kwargs)


def test_hash_count_limit_is_reported_as_invalid_argument():
    with pytest.raises(InvalidArgument, match="at most 255"):
        calculate(100, num_hashes=300)


def test_measure_actual_uses_rounded_bits():
    a = measure_actual(9, 2.5, 10)
    assert a.num_bits == 16
    assert a.num_hashes == 3
    assert a.serialized_size == 5
    assert a.false_positive_rate == pytest.approx((1 - math.exp(-3 * 10 / 16)) ** 3)
