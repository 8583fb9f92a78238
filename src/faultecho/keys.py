"""Store key layout for per-namespace metrics state.

Key structure:
    faultecho:{namespace}:recent_logs               -> LIST of JSON request records (newest first)
    faultecho:{namespace}:total_requests            -> STRING all-time counter
    faultecho:{namespace}:bucket:{YYYYMMDDTHHMMSS}  -> HASH {total, failures} with TTL

Every key is namespace-prefixed; nothing in the store is shared across namespaces.
Namespaces must not contain the separator, otherwise one namespace's bucket
prefix would match another namespace's keys.
"""

KEY_PREFIX = "faultecho"
KEY_SEPARATOR = ":"

RECENT_LOGS = "recent_logs"
TOTAL_REQUESTS = "total_requests"
BUCKET = "bucket"

BUCKET_TOTAL_FIELD = "total"
BUCKET_FAILURES_FIELD = "failures"


def namespace_prefix(namespace: str) -> str:
    """Prefix shared by every key of a namespace."""
    return f"{KEY_PREFIX}{KEY_SEPARATOR}{namespace}{KEY_SEPARATOR}"


def build_key(namespace: str, key: str) -> str:
    """Build a namespace-scoped key."""
    return f"{namespace_prefix(namespace)}{key}"


def recent_logs_key(namespace: str) -> str:
    return build_key(namespace, RECENT_LOGS)


def total_requests_key(namespace: str) -> str:
    return build_key(namespace, TOTAL_REQUESTS)


def bucket_key(namespace: str, bucket_id: str) -> str:
    """Build the hash key for one time bucket."""
    return build_key(namespace, f"{BUCKET}{KEY_SEPARATOR}{bucket_id}")


def bucket_key_prefix(namespace: str) -> str:
    """Prefix matched when scanning a namespace's bucket keys."""
    return build_key(namespace, f"{BUCKET}{KEY_SEPARATOR}")
