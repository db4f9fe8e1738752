"""
Weekly Aggregation - weekly release and news digest pipeline.

This package fetches software releases from code-hosting APIs and news items
from feeds, scraped pages and a discussion search API, deduplicates them and
buckets them into ISO calendar weeks for downstream summarization.
"""

__version__ = "0.1.0"
