# -*- coding: utf-8 -*-
"""
Test cho Bloom Filter engine: chèn, kiểm tra, làm tròn kích thước.
"""

import random
import string

import pytest

from bloomutils.bloom.bloom_filter import BloomFilter, payload_bytes_for
from bloomutils.bloom.bloom_params import calculate
from bloomutils.errors import InvalidArgument


def random_str(rng: random.Random, n: int = 8) -> str:
    """Sinh chuỗi ngẫu nhiên a–z."""
    return ''.join(rng.choices(string.ascii_lowercase, k=n))


def test_bloom_filter_empirical_fpr():
    """FPR thực nghiệm phải nằm dưới FPR mục tiêu khi không nạp quá num_items."""
    rng = random.Random(1234)
    capacity = 1000
    result = calculate(capacity, false_positive_rate=0.01)
    bf = BloomFilter(result.actual.num_bits, result.actual.num_hashes)

    dataset = {random_str(rng) for _ in range(capacity)}
    bf.insert_many(dataset)

    test_data = []
    while len(test_data) < 10_000:
        item = random_str(rng)
        if item not in dataset:
            test_data.append(item)
    false_positive = sum(bf.test(item) for item in test_data)
    empirical_fpr = false_positive / len(test_data)

    print("=" * 60)
    print("BLOOM FILTER TEST SUMMARY")
    print(f"- Items inserted (n): {len(dataset)}")
    print(f"- Hash functions (k): {bf.k_hash()}")
    print(f"- Bit array size (m): {bf.m_bits()}")
    print(f"- Empirical FPR    : {empirical_fpr:.4%}")
    print(f"- actual_p         : {result.actual.false_positive_rate:.4%}")
    print("=" * 60)

    assert empirical_fpr < 0.01, "FPR quá cao (>1%)!"


def test_no_false_negatives():
    rng = random.Random(7)
    bf = BloomFilter(2048, 4)
    items = [random_str(rng, 12) for _ in range(500)]
    bf.insert_many(items)
    assert all(bf.test(item) for item in items)
    assert all(item in bf for item in items)


def test_empty_filter_rejects_everything():
    rng = random.Random(99)
    bf = BloomFilter(1024, 3)
    assert not any(bf.test(random_str(rng)) for _ in range(1000))
    assert bf.estimate_fpr() == 0.0
    assert bf.fill_ratio() == 0.0


def test_insert_is_idempotent():
    once = BloomFilter(4096, 5)
    twice = BloomFilter(4096, 5)
    once.insert("hello")
    twice.insert("hello")
    twice.insert("hello")
    assert once == twice
    assert once.serialize() == twice.serialize()
    assert twice.get_inserted_count() == 2


def test_str_and_bytes_are_the_same_item():
    bf = BloomFilter(4096, 5)
    bf.insert("xin chào")
    assert bf.test("xin chào".encode("utf-8"))
    assert bf.test(bytearray("xin chào".encode("utf-8")))


def test_rejects_non_string_items():
    bf = BloomFilter(64, 2)
    with pytest.raises(InvalidArgument):
        bf.insert(42)


@pytest.mark.parametrize(
    "m_bits, expected_bits",
    [(1, 8), (8, 8), (9, 16), (8 * 1024, 8 * 1024), (8 * 1025, 8 * 2048), (1000.5, 1024)],
)
def test_size_rounds_up_to_power_of_two_bytes(m_bits, expected_bits):
    bf = BloomFilter(m_bits, 3)
    assert bf.m_bits() == expected_bits
    assert payload_bytes_for(m_bits) * 8 == expected_bits


def test_fractional_hash_count_rounds_up():
    assert BloomFilter(8192, 5.7).k_hash() == 6
    assert BloomFilter(8192, 6).k_hash() == 6
    assert BloomFilter(8192, 0.2).k_hash() == 1


@pytest.mark.parametrize(
    "m_bits, k_hash",
    [(0, 3), (-8, 3), (64, 0), (64, -1), (64, 256), (float("inf"), 3), (64, True), ("64", 3)],
)
def test_invalid_parameters(m_bits, k_hash):
    with pytest.raises(InvalidArgument):
        BloomFilter(m_bits, k_hash)


def test_unknown_hash_scheme():
    with pytest.raises(InvalidArgument, match="unknown hash scheme"):
        BloomFilter(64, 2, hash_scheme="md5")


def test_fill_ratio_grows_monotonically():
    rng = random.Random(3)
    bf = BloomFilter(512, 3)
    previous = 0.0
    for _ in range(100):
        bf.insert(random_str(rng))
        ratio = bf.fill_ratio()
        assert ratio >= previous
        previous = ratio
    assert 0.0 < bf.estimate_fpr() <= 1.0


@pytest.mark.parametrize("scheme", ["murmur3", "sha256"])
def test_positions_are_distinct_for_small_power_of_two_m(scheme):
    """m = 64, k = 8: h2 chẵn không được làm lặp vị trí."""
    rng = random.Random(42)
    bf = BloomFilter(64, 8, hash_scheme=scheme)
    for _ in range(500):
        positions = bf._positions(random_str(rng).encode())
        assert len(set(positions)) == 8


def test_single_item_sets_exactly_k_bits():
    bf = BloomFilter(64, 8)
    bf.insert("only")
    assert bf.fill_ratio() == 8 / 64
