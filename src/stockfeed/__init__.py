"""stockfeed: daily stock price ingestion with provider fallback."""

__version__ = "0.1.0"
