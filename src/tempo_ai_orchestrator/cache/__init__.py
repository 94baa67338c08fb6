# tempo_ai_orchestrator/cache/__init__.py
"""Three-tier analysis cache."""

from .keys import context_drift, make_cache_key, max_relative_change, relative_change  # noqa: F401
from .manager import CacheConfig, CacheManager  # noqa: F401
