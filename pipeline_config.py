"""
Configuration for the feedback pipeline.

Every value can be overridden through the environment; the step scripts
expose the most common ones again as command-line flags.
"""

import os


def as_boolean(value, default: bool) -> bool:
    """Parse an env-style boolean. Empty/unset falls back to the default."""
    if not value:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == 'true'
    return default


# =============================================================================
# MODEL BACKEND
# =============================================================================

# OpenAI-compatible server (Docker Model Runner by default)
OPENAI_BASE_URL = os.environ.get("OPENAI_BASE_URL", "http://localhost:12434/engines/v1")
OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY", "ignored")  # local runners ignore it

# Chat backend: "openai" (any OpenAI-compatible server) or "anthropic"
LLM_PROVIDER = os.environ.get("LLM_PROVIDER", "openai")
LLM_MODEL = os.environ.get("LLM_MODEL", "ai/gemma3")
ANTHROPIC_MODEL = os.environ.get("ANTHROPIC_MODEL", "claude-haiku-4-5-20251001")

# Embedding backend: "openai" (same server as chat) or "sentence-transformers" (local)
EMBEDDINGS_PROVIDER = os.environ.get("EMBEDDINGS_PROVIDER", "openai")
EMBEDDINGS_MODEL = os.environ.get("EMBEDDINGS_MODEL", "ai/mxbai-embed-large")
LOCAL_EMBEDDING_MODEL = os.environ.get("LOCAL_EMBEDDING_MODEL", "all-MiniLM-L6-v2")

REQUEST_TIMEOUT = 60  # seconds per remote call

# =============================================================================
# COMMENT GENERATION
# =============================================================================

PRODUCT_NAME = os.environ.get("PRODUCT_NAME", "Jarvis")
ALLOW_REGENERATE_COMMENTS = as_boolean(os.environ.get("ALLOW_GENERATE_COMMENTS"), True)
NUM_COMMENTS = 20
COMMENT_TYPES = ["positive", "negative", "neutral"]
TOPICS = [
    "user interface",
    "response quality",
    "response speed",
    "accuracy",
    "helpfulness",
    "feature requests",
    "bugs",
    "pricing",
    "comparison to competitors",
    "general experience",
]

# =============================================================================
# PROCESSING
# =============================================================================

SIMILARITY_THRESHOLD = 0.75  # cosine similarity needed to join a cluster
CLUSTER_NAME_SAMPLE_SIZE = 5  # member texts shown to the labeler

# =============================================================================
# PATHS
# =============================================================================

COMMENTS_FILE = os.environ.get("COMMENTS_FILE", "data/comments.json")
RESULTS_FILE = os.environ.get("RESULTS_FILE", "data/results.json")
