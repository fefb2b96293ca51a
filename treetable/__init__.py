"""treetable - hierarchical row flattening, collapse state and incremental merge."""

__version__ = "0.1.0"
