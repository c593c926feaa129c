"""Giá trị mặc định cho việc định cỡ Bloom filter.

Các mặc định được truyền tường minh vào calculator, engine và pipeline
thay vì đọc từ biến toàn cục ẩn.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SizingDefaults:
    # 16384*8 bit ~ 16KB: 1 byte/phần tử cho FPR ~2% khi nạp 16k phần tử
    num_bits: int = 16384 * 8
    num_hashes: int = 6
    false_positive_rate: float = 0.02
    # 0.7 lần số bit mỗi phần tử là tỉ lệ tối ưu thực nghiệm
    hash_to_bits_ratio: float = 0.7
    hash_scheme: str = "murmur3"


DEFAULTS = SizingDefaults()
