from .batch_runner import ComputeSummary, benchmark_period, rank_facility, run_compute

__all__ = ["ComputeSummary", "benchmark_period", "rank_facility", "run_compute"]
