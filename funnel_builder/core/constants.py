from typing import FrozenSet

# Generation retry policy
DEFAULT_GENERATION_TIMEOUT_MS: int = 30_000
DEFAULT_GENERATION_RETRIES: int = 2
DEFAULT_FALLBACK_RETRIES: int = 0
BACKOFF_BASE_MS: int = 1_000

# Substrings that mark a backend error message as an auth failure
AUTH_ERROR_MARKERS: FrozenSet[str] = frozenset(
    {"authentication", "unauthorized", "invalid api key"}
)

SHARE_TOKEN_BYTES: int = 16
SHARED_FUNNEL_CACHE_PREFIX: str = "shared_funnel:"

# Email template suggestion keywords (matched case-insensitively in the name)
PREMIUM_TEMPLATE_KEYWORD: str = "premium"
BASIC_TEMPLATE_KEYWORD: str = "basic"
