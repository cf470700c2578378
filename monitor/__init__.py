"""
Crypto Monitor - derived views over a polled market-metrics document.
"""

__version__ = "0.1.0"
