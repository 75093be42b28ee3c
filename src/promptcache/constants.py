"""Shared constants for PromptCache.

Defaults for the similarity policy, storage key namespaces and provider
backends live here so the engine, stores and configuration agree on them.
"""

# Similarity policy
DEFAULT_HIGH_THRESHOLD = 0.95
DEFAULT_LOW_THRESHOLD = 0.80
DEFAULT_GRAY_ZONE_VERIFICATION = True

# Storage namespaces sharing one key/value backend
EMBEDDING_KEY_PREFIX = "emb:"
PROMPT_KEY_PREFIX = "prompt:"

# Response cache
DEFAULT_RESPONSE_TTL_SECONDS = 24 * 60 * 60
NEVER_EXPIRES = 0

# Provider backends
DEFAULT_PROVIDER = "openai"
DEFAULT_PROVIDER_TIMEOUT_SECONDS = 30.0
DEFAULT_LOOKUP_TIMEOUT_SECONDS = 60.0
DEADLINE_POLL_SECONDS = 0.05
AFFIRMATIVE_VERDICT = "YES"
JUDGE_SYSTEM_PROMPT = (
    "You are a semantic judge. Determine if the two user prompts have the "
    "exact same intent and meaning. Answer only with 'YES' or 'NO'."
)
JUDGE_USER_TEMPLATE = "Prompt 1: {first}\nPrompt 2: {second}"

# Upstream chat completion API
DEFAULT_UPSTREAM_BASE_URL = "https://api.openai.com/v1"
DEFAULT_UPSTREAM_TIMEOUT_SECONDS = 120.0

# Redis
REDIS_SCAN_BATCH_SIZE = 500

# Environments
ENV_DEVELOPMENT = "development"
ENV_PRODUCTION = "production"
LOCALHOST = "localhost"
