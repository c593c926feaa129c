"""Bloom filter kiểm tra thành viên xác suất, có định dạng serialize cố định.

Kích thước mảng bit được làm tròn lên lũy thừa 2 theo byte (1025*8 bit thành
2048*8 bit), nên kích thước thật có thể lớn hơn m yêu cầu. Định dạng nhị phân:

    byte 0   mã hash scheme (xem bloom.hashing)
    byte 1   số hàm băm k (1..255)
    byte 2   log2(số byte payload)
    còn lại  mảng bit, bit cao nhất của mỗi byte đứng trước
"""
from __future__ import annotations

import math
import struct
from typing import Iterable

from bitarray import bitarray

from bloomutils.bloom.hashing import HashScheme, get_scheme, scheme_names
from bloomutils.errors import InvalidArgument, MalformedBlob
from bloomutils.types.item_types import Item, normalize_item

_HEADER = struct.Struct(">BBB")
HEADER_SIZE = _HEADER.size
MAX_HASHES = 255
DEFAULT_SCHEME = "murmur3"


def payload_bytes_for(m_bits: float) -> int:
    """Số byte payload: lũy thừa 2 nhỏ nhất chứa đủ m bit, tối thiểu 1 byte."""
    nbytes = max(1, math.ceil(m_bits / 8))
    return 1 << (nbytes - 1).bit_length()


def _resolve_scheme(name: str) -> HashScheme:
    scheme = get_scheme(name)
    if scheme is None:
        raise InvalidArgument(
            f"unknown hash scheme {name!r}, expected one of {', '.join(scheme_names())}"
        )
    return scheme


class BloomFilter:
    def __init__(self, m_bits: float, k_hash: float, hash_scheme: str = DEFAULT_SCHEME) -> None:
        """Khởi tạo filter rỗng với m bit (làm tròn lên) và ceil(k) hàm băm.

        k có thể là số thực (vd 5.7 từ công thức tỉ lệ), engine luôn dùng ceil(k).
        """
        if not _is_positive_number(m_bits):
            raise InvalidArgument(f"m_bits must be a positive number, got {m_bits!r}")
        if not _is_positive_number(k_hash):
            raise InvalidArgument(f"k_hash must be a positive number, got {k_hash!r}")
        k = math.ceil(k_hash)
        if k > MAX_HASHES:
            raise InvalidArgument(f"k_hash must be at most {MAX_HASHES}, got {k_hash!r}")

        self._scheme = _resolve_scheme(hash_scheme)
        self._k = k
        self._m = payload_bytes_for(m_bits) * 8
        self._bits = bitarray(self._m, endian="big")
        self._bits.setall(0)
        self._inserted = 0

    def insert(self, item: Item) -> None:
        """Thêm một phần tử (đặt k bit tương ứng). Chèn lặp lại không đổi mảng bit."""
        for pos in self._positions(normalize_item(item)):
            self._bits[pos] = 1
        self._inserted += 1

    def insert_many(self, items: Iterable[Item]) -> None:
        for item in items:
            self.insert(item)

    def test(self, item: Item) -> bool:
        """False là chắc chắn không có; True là có thể có (dương tính giả)."""
        bits = self._bits
        for pos in self._positions(normalize_item(item)):
            if not bits[pos]:
                return False
        return True

    def __contains__(self, item: Item) -> bool:
        return self.test(item)

    def m_bits(self) -> int:
        """Số bit thực tế sau khi làm tròn."""
        return self._m

    def k_hash(self) -> int:
        return self._k

    @property
    def hash_scheme(self) -> str:
        return self._scheme.name

    def get_inserted_count(self) -> int:
        """Số lần gọi insert (đếm logic, không khử trùng lặp, không được serialize)."""
        return self._inserted

    def fill_ratio(self) -> float:
        return self._bits.count(1) / self._m

    def estimate_fpr(self) -> float:
        """Ước lượng FPR hiện tại từ độ bão hòa: (số bit 1 / m) ^ k."""
        return self.fill_ratio() ** self._k

    def serialized_size(self) -> int:
        return HEADER_SIZE + self._m // 8

    def serialize(self) -> bytes:
        exponent = (self._m // 8).bit_length() - 1
        header = _HEADER.pack(self._scheme.scheme_id, self._k, exponent)
        return header + self._bits.tobytes()

    @classmethod
    def deserialize(cls, blob: bytes) -> "BloomFilter":
        """Dựng lại filter từ kết quả serialize(); lỗi định dạng ném MalformedBlob."""
        data = bytes(blob)
        if len(data) < HEADER_SIZE:
            raise MalformedBlob(
                f"blob is {len(data)} bytes, shorter than the {HEADER_SIZE}-byte header"
            )
        scheme_id, k, exponent = _HEADER.unpack_from(data)
        scheme = get_scheme(scheme_id)
        if scheme is None:
            raise MalformedBlob(f"unknown hash scheme id {scheme_id}")
        if k == 0:
            raise MalformedBlob("header declares zero hash functions")
        payload = data[HEADER_SIZE:]
        expected = 1 << exponent
        if len(payload) != expected:
            raise MalformedBlob(
                f"header declares {expected * 8} bits ({expected} bytes) "
                f"but payload has {len(payload)} bytes"
            )

        bits = bitarray(endian="big")
        bits.frombytes(payload)

        bf = cls.__new__(cls)
        bf._scheme = scheme
        bf._k = k
        bf._m = len(bits)
        bf._bits = bits
        bf._inserted = 0
        return bf

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BloomFilter):
            return NotImplemented
        return (
            self._scheme.scheme_id == other._scheme.scheme_id
            and self._k == other._k
            and self._bits == other._bits
        )

    def __repr__(self) -> str:
        return (
            f"BloomFilter(m={self._m:,} bits, k={self._k}, scheme={self._scheme.name}, "
            f"inserted={self._inserted:,}, fill={self.fill_ratio():.2%})"
        )

    # Hàm nội bộ
    def _positions(self, key: bytes) -> list[int]:
        """Sinh k vị trí bit bằng double hashing: (h1 + i*h2) mod m.

        m luôn là lũy thừa 2 nên h2 được ép lẻ, k vị trí khác nhau khi k <= m.
        """
        h1, h2 = self._scheme.func(key)
        h2 |= 1
        m = self._m
        return [(h1 + i * h2) % m for i in range(self._k)]


def _is_positive_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value > 0
