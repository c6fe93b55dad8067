import os

from .constants import BOOTSTRAP_NODES  # noqa: F401


# Helper functions to get numeric values from environment variables, with a default.
def _get_int_env(key, default):
    value = os.environ.get(key)
    if value and value.isdigit():
        return int(value)
    return default


def _get_float_env(key, default):
    value = os.environ.get(key)
    try:
        return float(value) if value else default
    except ValueError:
        return default


# -- Node Configuration --
# Port to listen on for DHT traffic.
# Can be overridden by environment variable: KRPC_PORT
DEFAULT_PORT = _get_int_env("KRPC_PORT", 6881)

# Seconds to wait for the response to an outgoing query.
# Can be overridden by environment variable: KRPC_QUERY_TIMEOUT
QUERY_TIMEOUT = _get_float_env("KRPC_QUERY_TIMEOUT", 2.0)

# Size in bytes of generated transaction IDs.
# Can be overridden by environment variable: KRPC_TRANSACTION_ID_SIZE
TRANSACTION_ID_SIZE = _get_int_env("KRPC_TRANSACTION_ID_SIZE", 2)


# -- Rate Limiting --
# Maximum number of datagrams accepted from one IP within the window.
# Can be overridden by environment variable: KRPC_RATE_LIMIT_REQUESTS
RATE_LIMIT_REQUESTS = _get_int_env("KRPC_RATE_LIMIT_REQUESTS", 50)

# Length of the rate limiting window in seconds.
# Can be overridden by environment variable: KRPC_RATE_LIMIT_WINDOW
RATE_LIMIT_WINDOW = _get_float_env("KRPC_RATE_LIMIT_WINDOW", 1.0)

# How often stale rate limiter entries are dropped, in seconds.
# Can be overridden by environment variable: KRPC_RATE_LIMIT_CLEANUP_INTERVAL
RATE_LIMIT_CLEANUP_INTERVAL = _get_int_env("KRPC_RATE_LIMIT_CLEANUP_INTERVAL", 60)
