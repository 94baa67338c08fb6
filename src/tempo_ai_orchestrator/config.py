# tempo_ai_orchestrator/config.py
from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()

# Generator boundary
GENERATOR_TIMEOUT_MS = int(os.getenv("TEMPO_GENERATOR_TIMEOUT_MS", "3000"))
DEFAULT_LANGUAGE = os.getenv("TEMPO_DEFAULT_LANGUAGE", "ja")

# Usage budgets (per user, per day)
MAX_REQUESTS_PER_DAY = int(os.getenv("TEMPO_MAX_REQUESTS_PER_DAY", "5"))
MAX_DAILY_COST_USD = float(os.getenv("TEMPO_MAX_DAILY_COST_USD", "0.10"))
REUSE_WINDOW_SECONDS = int(os.getenv("TEMPO_REUSE_WINDOW_SECONDS", "3600"))
CHANGE_THRESHOLD = float(os.getenv("TEMPO_CHANGE_THRESHOLD", "0.10"))
USAGE_TIMEZONE = os.getenv("TEMPO_USAGE_TIMEZONE", "UTC")

# Cost model
COST_PER_TOKEN_USD = float(os.getenv("TEMPO_COST_PER_TOKEN_USD", "0.000015"))
EXPECTED_RESPONSE_TOKENS = int(os.getenv("TEMPO_EXPECTED_RESPONSE_TOKENS", "800"))

# Cache tiers
INSTANT_TTL_SECONDS = int(os.getenv("TEMPO_INSTANT_TTL_SECONDS", "3600"))
CONTEXTUAL_TTL_SECONDS = int(os.getenv("TEMPO_CONTEXTUAL_TTL_SECONDS", "14400"))
CACHE_MAX_ENTRIES = int(os.getenv("TEMPO_CACHE_MAX_ENTRIES", "1024"))
