# benchmark/run_benchmark.py
"""
Benchmark FPR thực nghiệm so với actual_p của calculator.

- Với mỗi FPR mục tiêu: tính (m, k), dựng filter từ num_items chuỗi ngẫu nhiên
- Đo FPR thực tế trên tập truy vấn không thuộc tập đã chèn
- Nhiều lần chạy với avg ± std cho FPR, throughput chèn/truy vấn
- Đo memory tiến trình bằng psutil (RSS)
- In bảng kết quả (tabulate), lưu CSV (pandas) và biểu đồ (matplotlib)
"""

import argparse
import os
import random
import string
import time
from typing import List, Sequence, Set

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import psutil
from tabulate import tabulate

from bloomutils.bloom.bloom_filter import BloomFilter
from bloomutils.bloom.bloom_params import calculate

DEFAULT_FP_RATES = (0.1, 0.05, 0.02, 0.01, 0.001)


def random_item(rng: random.Random, n: int = 12) -> str:
    return ''.join(rng.choices(string.ascii_lowercase + string.digits, k=n))


def prepare_items(rng: random.Random, num_items: int, num_queries: int) -> tuple[List[str], List[str]]:
    """Sinh tập chèn và tập truy vấn không giao nhau"""
    inserted: Set[str] = set()
    while len(inserted) < num_items:
        inserted.add(random_item(rng))

    queries: List[str] = []
    while len(queries) < num_queries:
        item = random_item(rng)
        if item not in inserted:
            queries.append(item)
    return list(inserted), queries


def benchmark_once(fp_rate: float, items: List[str], queries: List[str], hash_scheme: str) -> dict:
    """Một lần chạy cho một FPR mục tiêu"""
    result = calculate(len(items), false_positive_rate=fp_rate)
    bf = BloomFilter(result.actual.num_bits, result.actual.num_hashes, hash_scheme)

    start_insert = time.perf_counter()
    bf.insert_many(items)
    insert_duration = time.perf_counter() - start_insert

    start_query = time.perf_counter()
    false_positives = sum(1 for item in queries if bf.test(item))
    query_duration = time.perf_counter() - start_query

    return {
        "target_fpr": fp_rate,
        "actual_p": result.actual.false_positive_rate,
        "actual_m": result.actual.num_bits,
        "actual_k": result.actual.num_hashes,
        "size_bytes": result.actual.serialized_size,
        "empirical_fpr": false_positives / len(queries),
        "insert_qps": len(items) / max(insert_duration, 1e-9),
        "query_qps": len(queries) / max(query_duration, 1e-9),
        "rss_kb": psutil.Process().memory_info().rss / 1024,
    }


def run_full_benchmark(
    fp_rates: Sequence[float] = DEFAULT_FP_RATES,
    num_items: int = 20_000,
    num_queries: int = 100_000,
    num_runs: int = 3,
    hash_scheme: str = "murmur3",
    seed: int = 42,
) -> pd.DataFrame:
    """Chạy benchmark với nhiều lần lặp, trả về bảng tổng hợp"""
    rng = random.Random(seed)
    runs = []
    for run in range(1, num_runs + 1):
        print(f"\n{'='*20} RUN {run}/{num_runs} {'='*20}")
        items, queries = prepare_items(rng, num_items, num_queries)
        for fp_rate in fp_rates:
            res = benchmark_once(fp_rate, items, queries, hash_scheme)
            res["run"] = run
            runs.append(res)
            print(f"  p={fp_rate:<6} empirical={res['empirical_fpr']:.4%} actual_p={res['actual_p']:.4%}")

    raw = pd.DataFrame(runs)
    rows = []
    for fp_rate, group in raw.groupby("target_fpr", sort=False):
        emp = group["empirical_fpr"].to_numpy()
        rows.append({
            "target_fpr": fp_rate,
            "actual_p": group["actual_p"].iloc[0],
            "actual_m": int(group["actual_m"].iloc[0]),
            "actual_k": int(group["actual_k"].iloc[0]),
            "size_bytes": int(group["size_bytes"].iloc[0]),
            "fpr_mean": np.mean(emp),
            "fpr_std": np.std(emp),
            "insert_qps_mean": np.mean(group["insert_qps"].to_numpy()),
            "query_qps_mean": np.mean(group["query_qps"].to_numpy()),
            "rss_kb_max": np.max(group["rss_kb"].to_numpy()),
        })
    summary = pd.DataFrame(rows)

    print_results(summary, num_runs)
    plot_results(summary)
    os.makedirs("plots", exist_ok=True)
    summary.to_csv("plots/benchmark_fpr.csv", index=False)
    return summary


def print_results(summary: pd.DataFrame, num_runs: int):
    """In bảng kết quả"""
    table = []
    for _, s in summary.iterrows():
        table.append([
            f"{s['target_fpr']:.3%}",
            f"{s['actual_p']:.4%}",
            f"{s['fpr_mean']:.4%} ± {s['fpr_std']:.4%}",
            f"{int(s['actual_m']):,} bits / k={int(s['actual_k'])}",
            f"{int(s['size_bytes']):,} B",
            f"{s['insert_qps_mean']:,.0f} / {s['query_qps_mean']:,.0f} qps",
        ])

    print(f"\n=== KẾT QUẢ BENCHMARK (Avg ± Std over {num_runs} runs) ===")
    print(tabulate(
        table,
        headers=["Target p", "actual_p", "Empirical FPR", "Filter", "Size", "Insert / Query"],
        tablefmt="github",
    ))


def plot_results(summary: pd.DataFrame):
    """Vẽ FPR thực nghiệm (error bars) cạnh actual_p và target p"""
    labels = [f"{p:.3%}" for p in summary["target_fpr"]]
    x = np.arange(len(labels))
    width = 0.28

    fig, ax = plt.subplots(figsize=(10, 6))
    ax.bar(x - width, summary["target_fpr"] * 100, width, label="Target p", color="gray", alpha=0.6)
    ax.bar(x, summary["actual_p"] * 100, width, label="actual_p", color="orange", alpha=0.8)
    ax.bar(x + width, summary["fpr_mean"] * 100, width, yerr=summary["fpr_std"] * 100,
           capsize=5, label="Empirical", color="green", alpha=0.8)
    ax.set_xticks(x)
    ax.set_xticklabels(labels)
    ax.set_ylabel("False Positive Rate (%)")
    ax.set_title("Bloom filter: empirical vs calculated false positive rate")
    ax.legend()
    plt.tight_layout()

    os.makedirs("plots", exist_ok=True)
    plot_path = "plots/benchmark_fpr.png"
    plt.savefig(plot_path, dpi=200)
    plt.close(fig)
    print(f"\nBiểu đồ đã lưu tại: {plot_path}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Benchmark empirical false positive rate.")
    parser.add_argument("--num-items", type=int, default=20_000)
    parser.add_argument("--num-queries", type=int, default=100_000)
    parser.add_argument("--runs", type=int, default=3)
    parser.add_argument("--hash-scheme", default="murmur3")
    parser.add_argument("--seed", type=int, default=42)
    args = parser.parse_args()
    run_full_benchmark(
        num_items=args.num_items,
        num_queries=args.num_queries,
        num_runs=args.runs,
        hash_scheme=args.hash_scheme,
        seed=args.seed,
    )
