"""Price history queries."""

from stockfeed.query.engine import QueryEngine

__all__ = ["QueryEngine"]
