"""Benchmark orchestration for execbench.

Drives repeated executor invocations over a matrix of metric
configurations, sync/async strategies and executors, and aggregates
the resulting samples into comparable statistics.
"""
