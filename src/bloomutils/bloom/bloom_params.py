"""Tính tham số Bloom filter (m, k) từ số phần tử và FPR mong muốn.

Một số quy tắc kinh nghiệm:

* 1 byte cho mỗi phần tử cho FPR khoảng 2%. Với các FPR khác:
  10% ~ 4.8 bit/phần tử, 1% ~ 9.6, 0.1% ~ 14.4, 0.01% ~ 19.2.
* Số hàm băm tối ưu khoảng 0.7 lần số bit mỗi phần tử. Số hàm băm quyết định
  tốc độ, muốn nhanh hơn thì chọn ít hơn.

Giá trị "actual" được đo trên một filter thật, vì engine làm tròn m lên lũy
thừa 2 theo byte. Do đó hai FPR khác nhau (vd 1% và 0.1%) có thể cho ra cùng
một filter.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

from bloomutils.bloom.bloom_filter import HEADER_SIZE, BloomFilter
from bloomutils.config import DEFAULTS, SizingDefaults
from bloomutils.errors import InvalidArgument

logger = logging.getLogger(__name__)

LN2 = math.log(2)


@dataclass(frozen=True)
class FilterParameters:
    num_bits: float
    num_hashes: float
    num_items: int
    false_positive_rate: float
    bits_per_item: float
    hash_to_bits_ratio: float


@dataclass(frozen=True)
class ActualFilterParameters:
    num_bits: int
    num_hashes: int
    false_positive_rate: float
    serialized_size: int


@dataclass(frozen=True)
class CalculatorResult:
    params: FilterParameters
    actual: ActualFilterParameters

    def as_dict(self) -> dict[str, float]:
        """Bảng kết quả đầy đủ, kèm các tên viết tắt m, n, k, p."""
        p, a = self.params, self.actual
        return {
            "num_bits": p.num_bits,
            "m": p.num_bits,
            "num_items": p.num_items,
            "n": p.num_items,
            "num_hashes": p.num_hashes,
            "k": p.num_hashes,
            "num_hashes_to_bits_per_item_ratio": p.hash_to_bits_ratio,
            "fp_rate": p.false_positive_rate,
            "p": p.false_positive_rate,
            "num_bits_per_item": p.bits_per_item,
            "m/n": p.bits_per_item,
            "actual_num_bits": a.num_bits,
            "actual_m": a.num_bits,
            "actual_num_hashes": a.num_hashes,
            "actual_k": a.num_hashes,
            "actual_fp_rate": a.false_positive_rate,
            "actual_p": a.false_positive_rate,
            "actual_bloom_size": a.serialized_size,
        }


def optimal_num_bits(num_items: int, false_positive_rate: float) -> float:
    """m = n * ln(1/p) / (ln 2)^2"""
    return num_items * math.log(1 / false_positive_rate) / LN2 ** 2


def theoretical_fpr(num_bits: float, num_hashes: int, num_items: int) -> float:
    """(1 - e^{-k n / m})^k"""
    return (1.0 - math.exp(-num_hashes * num_items / num_bits)) ** num_hashes


def calculate(
    num_items: Optional[int],
    false_positive_rate: Optional[float] = None,
    num_bits: Optional[float] = None,
    num_hashes: Optional[float] = None,
    num_hashes_to_bits_per_item_ratio: Optional[float] = None,
    defaults: SizingDefaults = DEFAULTS,
) -> CalculatorResult:
    """Tính m, k cho num_items phần tử và FPR mục tiêu.

    Thứ tự chọn k: num_hashes tường minh, rồi ratio * (m/n), rồi (m/n) * ln 2.
    Ratio mặc định (0.7) chỉ áp dụng khi cả m lẫn k đều không được đưa vào;
    nếu người gọi đưa sẵn num_bits mà không có gợi ý về k thì dùng k lý thuyết.
    Khi ratio không phải đầu vào, nó được tính ngược: k / (m/n).
    """
    if num_items is None:
        raise InvalidArgument("num_items is required")
    if isinstance(num_items, bool) or not isinstance(num_items, int) or num_items <= 0:
        raise InvalidArgument(f"num_items must be a positive integer, got {num_items!r}")
    if num_hashes is not None and num_hashes_to_bits_per_item_ratio is not None:
        raise InvalidArgument(
            "num_hashes and num_hashes_to_bits_per_item_ratio are mutually exclusive"
        )

    fp_rate = defaults.false_positive_rate if false_positive_rate is None else false_positive_rate
    if not _is_number(fp_rate) or not 0 < fp_rate <= 0.5:
        raise InvalidArgument(f"false_positive_rate must be in (0, 0.5], got {fp_rate!r}")
    _check_positive("num_bits", num_bits)
    _check_positive("num_hashes", num_hashes)
    _check_positive("num_hashes_to_bits_per_item_ratio", num_hashes_to_bits_per_item_ratio)

    ratio = num_hashes_to_bits_per_item_ratio
    if ratio is None and num_hashes is None and num_bits is None:
        ratio = defaults.hash_to_bits_ratio

    m = optimal_num_bits(num_items, fp_rate) if num_bits is None else num_bits
    bits_per_item = m / num_items
    if num_hashes is not None:
        k = num_hashes
    elif ratio is not None:
        k = ratio * bits_per_item
    else:
        k = bits_per_item * LN2
    if ratio is None:
        ratio = k / bits_per_item

    params = FilterParameters(
        num_bits=m,
        num_hashes=k,
        num_items=num_items,
        false_positive_rate=fp_rate,
        bits_per_item=bits_per_item,
        hash_to_bits_ratio=ratio,
    )
    actual = measure_actual(m, k, num_items, hash_scheme=defaults.hash_scheme)
    logger.debug("calculated %s -> %s", params, actual)
    return CalculatorResult(params=params, actual=actual)


def calculate_for_bits(
    num_bits: Optional[float] = None,
    num_hashes: Optional[float] = None,
    defaults: SizingDefaults = DEFAULTS,
) -> CalculatorResult:
    """Chế độ cho sẵn (m, k): giả định 1 byte/phần tử (n = m/8) chỉ để báo cáo."""
    m = defaults.num_bits if num_bits is None else num_bits
    k = defaults.num_hashes if num_hashes is None else num_hashes
    _check_positive("num_bits", m)
    num_items = max(1, int(m / 8))
    return calculate(num_items, num_bits=m, num_hashes=k, defaults=defaults)


def measure_actual(
    num_bits: float,
    num_hashes: float,
    num_items: int,
    hash_scheme: str = DEFAULTS.hash_scheme,
) -> ActualFilterParameters:
    """Dựng thử một filter rồi đo kích thước serialize để biết m thật."""
    bloom = BloomFilter(max(1, round(num_bits)), math.ceil(num_hashes), hash_scheme)
    size = len(bloom.serialize())
    actual_m = (size - HEADER_SIZE) * 8
    actual_k = bloom.k_hash()
    return ActualFilterParameters(
        num_bits=actual_m,
        num_hashes=actual_k,
        false_positive_rate=theoretical_fpr(actual_m, actual_k, num_items),
        serialized_size=size,
    )


def _is_number(value: object) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _check_positive(name: str, value: Optional[float]) -> None:
    if value is None:
        return
    if not _is_number(value) or value <= 0:
        raise InvalidArgument(f"{name} must be a positive number, got {value!r}")
