"""Pipeline dòng lệnh: build filter từ luồng dòng, check phần tử với blob.

- build_filter: đọc từng dòng, chèn vào filter, ghi blob nhị phân ra output.
- check_items: đọc toàn bộ blob (định dạng không giải mã từng phần được),
  rồi ghi "1"/"0" cho từng phần tử theo đúng thứ tự.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from functools import partial
from typing import BinaryIO, Iterable, Optional, Sequence, TextIO

from bloomutils.bloom.bloom_filter import BloomFilter
from bloomutils.bloom.bloom_params import CalculatorResult, calculate, calculate_for_bits
from bloomutils.config import DEFAULTS, SizingDefaults
from bloomutils.errors import InvalidArgument, OverBudgetWarning
from bloomutils.metrics.metrics import FilterMetrics
from bloomutils.types.item_types import Item

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 8192


@dataclass
class BuildReport:
    result: CalculatorResult
    bloom: BloomFilter
    items_inserted: int
    over_budget: bool
    blob_size: int
    metrics: FilterMetrics = field(default_factory=FilterMetrics)
    warning: Optional[OverBudgetWarning] = None


def resolve_sizing(
    num_items: Optional[int] = None,
    false_positive_rate: Optional[float] = None,
    num_bits: Optional[float] = None,
    num_hashes: Optional[float] = None,
    defaults: SizingDefaults = DEFAULTS,
) -> CalculatorResult:
    """Có num_items thì dùng calculator, ngược lại dùng (m, k) cho sẵn hoặc mặc định."""
    if num_items is not None:
        ratio = defaults.hash_to_bits_ratio if num_hashes is None else None
        return calculate(
            num_items,
            false_positive_rate=false_positive_rate,
            num_bits=num_bits,
            num_hashes=num_hashes,
            num_hashes_to_bits_per_item_ratio=ratio,
            defaults=defaults,
        )
    if false_positive_rate is not None:
        logger.warning("false_positive_rate is ignored unless num_items is also given")
    return calculate_for_bits(num_bits=num_bits, num_hashes=num_hashes, defaults=defaults)


def build_filter(
    lines: Iterable[Item],
    output: BinaryIO,
    *,
    num_items: Optional[int] = None,
    false_positive_rate: Optional[float] = None,
    num_bits: Optional[float] = None,
    num_hashes: Optional[float] = None,
    hash_scheme: Optional[str] = None,
    defaults: SizingDefaults = DEFAULTS,
) -> BuildReport:
    """Chèn từng dòng (đã bỏ ký tự xuống dòng cuối) rồi ghi blob ra output."""
    result = resolve_sizing(num_items, false_positive_rate, num_bits, num_hashes, defaults)
    m = result.actual.num_bits if num_bits is None else num_bits
    k = result.actual.num_hashes if num_hashes is None else num_hashes

    logger.info(
        "Will be creating bloom filter with num_bits (m)=%d, num_hashes (k)=%d, "
        "actual false-positive rate=%.5f%% (when num_items=%d), actual bloom filter size=%d bytes",
        m, k, result.actual.false_positive_rate * 100, result.params.num_items,
        result.actual.serialized_size,
    )

    bloom = BloomFilter(m, k, hash_scheme or defaults.hash_scheme)
    metrics = FilterMetrics()
    warning = None
    for line in lines:
        bloom.insert(_chomp(line))
        over = num_items is not None and metrics.insertions >= num_items
        metrics.record_insertion(over_budget=over)
        if over and warning is None:
            # log một lần cho mỗi lần build
            warning = OverBudgetWarning(
                f"You created bloom filter for num_items={num_items}, "
                "but now have added more than that"
            )
            logger.warning("%s", warning)

    blob = bloom.serialize()
    output.write(blob)
    metrics.bytes_written = len(blob)
    logger.info(
        "Inserted %d item(s), fill ratio=%.2f%%, estimated false-positive rate=%.5f%%",
        metrics.insertions, bloom.fill_ratio() * 100, bloom.estimate_fpr() * 100,
    )
    return BuildReport(
        result=result,
        bloom=bloom,
        items_inserted=metrics.insertions,
        over_budget=warning is not None,
        blob_size=len(blob),
        metrics=metrics,
        warning=warning,
    )


def read_blob(stream: BinaryIO, chunk_size: int = READ_CHUNK_SIZE) -> bytes:
    """Đọc hết luồng nhị phân đến EOF."""
    chunks = []
    for block in iter(partial(stream.read, chunk_size), b""):
        chunks.append(block)
    return b"".join(chunks)


def load_filter(stream: BinaryIO) -> BloomFilter:
    return BloomFilter.deserialize(read_blob(stream))


def check_items(stream: BinaryIO, items: Sequence[Item], output: TextIO) -> list[bool]:
    """Ghi "1" (có thể có) hoặc "0" (chắc chắn không) cho từng phần tử."""
    if not items:
        raise InvalidArgument("at least one item to check is required")

    blob = read_blob(stream)
    bloom = BloomFilter.deserialize(blob)
    metrics = FilterMetrics(bytes_read=len(blob))

    results = []
    for item in items:
        start = time.perf_counter_ns()
        hit = bloom.test(item)
        metrics.record_lookup_latency((time.perf_counter_ns() - start) // 1000)
        metrics.record_query(hit)
        results.append(hit)
        output.write("1\n" if hit else "0\n")

    logger.debug(
        "Checked %d item(s) against %r: hits=%d misses=%d hit_rate=%.2f%% avg_latency=%.1fus",
        metrics.queries, bloom, metrics.hits, metrics.misses, metrics.hit_rate() * 100,
        metrics.average_lookup_latency_us(),
    )
    return results


def _chomp(line: Item) -> Item:
    if isinstance(line, str):
        return line[:-1] if line.endswith("\n") else line
    data = bytes(line)
    return data[:-1] if data.endswith(b"\n") else data
