"""Các hàm băm cơ sở cho double hashing.

Mỗi scheme nhận bytes và trả về cặp (h1, h2) gồm hai số nguyên 64-bit không
dấu. Mã scheme (1 byte) được ghi vào header khi serialize, nên một filter chỉ
được đọc lại bằng đúng scheme đã dùng để tạo ra nó.
"""
from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Callable

import mmh3

HashPair = tuple[int, int]


def murmur3_pair(data: bytes) -> HashPair:
    """MurmurHash3 x64 128-bit, tách thành hai nửa 64-bit."""
    h1, h2 = mmh3.hash64(data, seed=0, x64arch=True, signed=False)
    return h1, h2


def sha256_pair(data: bytes) -> HashPair:
    digest = hashlib.sha256(data).digest()
    h1 = int.from_bytes(digest[:8], byteorder="big", signed=False)
    h2 = int.from_bytes(digest[8:16], byteorder="big", signed=False)
    return h1, h2


@dataclass(frozen=True)
class HashScheme:
    scheme_id: int
    name: str
    func: Callable[[bytes], HashPair]


_SCHEMES = (
    HashScheme(scheme_id=1, name="murmur3", func=murmur3_pair),
    HashScheme(scheme_id=2, name="sha256", func=sha256_pair),
)
SCHEMES_BY_ID = {s.scheme_id: s for s in _SCHEMES}
SCHEMES_BY_NAME = {s.name: s for s in _SCHEMES}


def scheme_names() -> list[str]:
    return [s.name for s in _SCHEMES]


def get_scheme(key: int | str) -> HashScheme | None:
    """Tra scheme theo mã số (từ header) hoặc theo tên (từ cấu hình)."""
    if isinstance(key, str):
        return SCHEMES_BY_NAME.get(key)
    return SCHEMES_BY_ID.get(key)
