"""Price ingestion: bulk ingestor and freshness policy."""

from stockfeed.ingestion.freshness import FreshnessPolicy
from stockfeed.ingestion.ingestor import BulkIngestor

__all__ = [
    "BulkIngestor",
    "FreshnessPolicy",
]
