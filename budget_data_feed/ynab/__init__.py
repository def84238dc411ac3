"""YNAB category metrics -> InfluxDB semi real-time feed.

Implements delta pulling with the server knowledge cursor, point mapping,
batched InfluxDB writes and the polling loop.
"""

__all__ = [
    "api",
    "errors",
    "influx",
    "mapping",
    "sync",
]
