"""
Shared client instances: Redis and OpenAI.

Importing this module is always safe, even when env vars are missing during
tests: a missing OpenAI key leaves openai_client as None and logs a warning.
"""
import logging
import redis

from lead_engine.config import REDIS_URL, OPENAI_API_KEY

logger = logging.getLogger('lead_engine.extensions')

# ── Redis ─────────────────────────────────────────────────────────────────────
redis_client = redis.from_url(REDIS_URL, decode_responses=True)

# ── OpenAI ────────────────────────────────────────────────────────────────────
openai_client = None
if OPENAI_API_KEY:
    try:
        from openai import OpenAI
        openai_client = OpenAI(api_key=OPENAI_API_KEY)
        logger.info("OpenAI client initialized successfully")
    except Exception as e:
        logger.error("Error initializing OpenAI client: %s", e)
else:
    logger.warning("OPENAI_API_KEY not set, scoring and suggestions will fail")
