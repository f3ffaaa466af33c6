"""
iambench - policy evaluation latency benchmark

Generates a corpus of access control policies, prepares a decision query on
a policy engine and measures how long each decision takes.

Core Components:
- ACP generator: exact and glob flavored policy records
- Evaluation driver: store construction and query preparation
- Measurement loop: repeated evaluation with latency percentiles
- Engines: regorus adapter and pure-Python reference engine
"""

__version__ = "0.1.0"
__author__ = "iambench contributors"

__all__ = ["__version__"]
