"""Budget Data Feed - mirrors budgeting service metrics into a time-series store.

Provides:
- YNAB category delta feed (cursor based, polled)
- InfluxDB v2 batch writer
- CLI entry point for the long-running sync loop
"""

__version__ = "0.1.0"

# Expose main submodules
from . import ynab

__all__ = ["ynab", "__version__"]
