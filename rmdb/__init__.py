"""Storage engine building blocks: pages, disk files, an LRU buffer pool, record files, log records and SQL syntax trees."""

__version__ = "0.1.0"