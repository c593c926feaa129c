"""Chuẩn hóa phần tử đầu vào thành bytes trước khi băm."""
from __future__ import annotations

from typing import Union

from bloomutils.errors import InvalidArgument

Item = Union[str, bytes, bytearray, memoryview]


def normalize_item(value: Item) -> bytes:
    """Chuỗi được mã hóa UTF-8, dữ liệu dạng bytes được sao chép nguyên trạng."""
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        return value.encode("utf-8")
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    raise InvalidArgument(f"item must be str or bytes, got {type(value).__name__}")
