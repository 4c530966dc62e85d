"""execbench: benchmark external test executors.

Runs a test executor many times under a matrix of metric configurations,
sync/async call strategies and executor runtimes, and summarizes the
resulting samples.
"""

__version__ = "0.1.0"
