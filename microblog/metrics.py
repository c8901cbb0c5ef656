from prometheus_client import Counter

CACHE_HITS = Counter('microblog_cache_hits_total', 'Post lookups served from the cache')
CACHE_MISSES = Counter('microblog_cache_misses_total', 'Post lookups that fell through to the store')
CACHE_ERRORS = Counter(
    'microblog_cache_errors_total',
    'Cache failures that were absorbed',
    ['operation'],
)
STORAGE_ERRORS = Counter(
    'microblog_storage_errors_total',
    'Backend failures raised as StorageError',
    ['backend'],
)
