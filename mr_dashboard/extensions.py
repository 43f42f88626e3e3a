"""Shared singletons: logger, summary cache, locks.

All global state used across modules lives here to avoid circular imports.
"""

import logging
import threading

from cachetools import TTLCache

from mr_dashboard.config import get_config

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger("mr_dashboard")

# Generated AI summaries, keyed by (mr_ref, provider). Bounded with TTL eviction.
summary_cache = TTLCache(
    maxsize=128,
    ttl=get_config().get("summary_cache_ttl_seconds", 900),
)
summary_cache_lock = threading.Lock()

# Lazily built service clients (see services/*_service.py getters)
services_lock = threading.Lock()
