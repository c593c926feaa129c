"""Các loại lỗi và mã thoát dùng chung cho bloomutils."""
from __future__ import annotations

from enum import IntEnum


class ExitStatus(IntEnum):
    OK = 0
    CLIENT_ERROR = 2


class BloomUtilsError(Exception):
    """Lỗi gốc của gói, CLI ánh xạ sang ExitStatus.CLIENT_ERROR."""


class InvalidArgument(BloomUtilsError, ValueError):
    """Tham số sai hoặc mâu thuẫn; thao tác không được bắt đầu."""


class MalformedBlob(BloomUtilsError, ValueError):
    """Chuỗi byte không phải Bloom filter đã serialize hợp lệ."""


class OverBudgetWarning(UserWarning):
    """Đã chèn nhiều phần tử hơn num_items dự kiến (không chặn việc chèn)."""
