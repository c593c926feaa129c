"""Bộ đếm metrics gọn cho các pipeline build/check."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass
class FilterMetrics:
    insertions: int = 0
    over_budget_insertions: int = 0
    queries: int = 0
    hits: int = 0
    misses: int = 0
    bytes_read: int = 0
    bytes_written: int = 0
    lookup_latency_total_us: int = 0
    lookup_count: int = 0

    def record_insertion(self, over_budget: bool = False) -> None:
        self.insertions += 1
        if over_budget:
            self.over_budget_insertions += 1

    def record_query(self, hit: bool) -> None:
        self.queries += 1
        if hit:
            self.hits += 1
        else:
            self.misses += 1

    def record_lookup_latency(self, micros: int) -> None:
        self.lookup_latency_total_us += micros
        self.lookup_count += 1

    def average_lookup_latency_us(self) -> float:
        if self.lookup_count == 0:
            return 0.0
        return self.lookup_latency_total_us / float(self.lookup_count)

    def hit_rate(self) -> float:
        if self.queries == 0:
            return 0.0
        return self.hits / float(self.queries)
