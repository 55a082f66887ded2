"""Prometheus metrics for search, caching, rate limiting and indexing."""

from prometheus_client import Counter, Histogram

SEARCH_REQUESTS = Counter(
    "auxstream_search_requests_total",
    "Total number of search requests",
    ["source", "status"],
)

SEARCH_DURATION = Histogram(
    "auxstream_search_duration_seconds",
    "Search request duration in seconds",
    ["source"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10),
)

CACHE_HITS = Counter(
    "auxstream_cache_hits_total",
    "Total number of cache hits",
    ["cache_type"],
)

CACHE_MISSES = Counter(
    "auxstream_cache_misses_total",
    "Total number of cache misses",
    ["cache_type"],
)

INDEXER_JOBS = Counter(
    "auxstream_indexer_jobs_total",
    "Total number of indexer passes run",
)

INDEXER_TRACKS_INDEXED = Counter(
    "auxstream_indexer_tracks_indexed_total",
    "Total number of tracks indexed",
    ["source", "status"],
)

INDEXER_JOB_DURATION = Histogram(
    "auxstream_indexer_job_duration_seconds",
    "Indexer pass duration in seconds",
    buckets=(1, 5, 10, 30, 60, 120, 300, 600),
)

RATE_LIMIT_EXCEEDED = Counter(
    "auxstream_rate_limit_exceeded_total",
    "Total number of rate limit exceeded events",
    ["limit_type"],
)


def record_search_request(source: str, status: str, duration: float) -> None:
    SEARCH_REQUESTS.labels(source=source, status=status).inc()
    SEARCH_DURATION.labels(source=source).observe(duration)


def record_cache_hit(cache_type: str) -> None:
    CACHE_HITS.labels(cache_type=cache_type).inc()


def record_cache_miss(cache_type: str) -> None:
    CACHE_MISSES.labels(cache_type=cache_type).inc()


def record_track_indexed(source: str, status: str) -> None:
    INDEXER_TRACKS_INDEXED.labels(source=source or "unknown", status=status).inc()


def record_indexer_job(duration: float, success_count: int, fail_count: int) -> None:
    """Record one full indexing pass; per-track counts go under source="all"."""
    INDEXER_JOBS.inc()
    INDEXER_JOB_DURATION.observe(duration)
    if success_count > 0:
        INDEXER_TRACKS_INDEXED.labels(source="all", status="success").inc(success_count)
    if fail_count > 0:
        INDEXER_TRACKS_INDEXED.labels(source="all", status="failed").inc(fail_count)


def record_rate_limit_exceeded(limit_type: str) -> None:
    RATE_LIMIT_EXCEEDED.labels(limit_type=limit_type).inc()
