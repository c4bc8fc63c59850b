"""
Centralized configuration: env vars and engine constants.
"""
import os


# ── Logging ──────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_FORMAT = os.getenv('LOG_FORMAT', 'text')

# ── Redis ─────────────────────────────────────────────────────────────────────
REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

# ── PostgreSQL ────────────────────────────────────────────────────────────────
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///local.db')

# ── OpenAI ────────────────────────────────────────────────────────────────────
OPENAI_API_KEY = os.getenv('OPENAI_API_KEY')
OPENAI_MODEL = os.getenv('OPENAI_MODEL', 'gpt-4o')
OPENAI_TEMPERATURE = float(os.getenv('OPENAI_TEMPERATURE', '0.2'))

# ── Slack notifications ──────────────────────────────────────────────────────
SLACK_WEBHOOK_URL = os.getenv('SLACK_WEBHOOK_URL')

# ── Staleness thresholds ─────────────────────────────────────────────────────
RESCORE_THRESHOLD_DAYS = int(os.getenv('RESCORE_THRESHOLD_DAYS', '3'))
SUGGEST_THRESHOLD_HOURS = int(os.getenv('SUGGEST_THRESHOLD_HOURS', '24'))

# ── Batch scoring ────────────────────────────────────────────────────────────
BATCH_DELAY_SECONDS = float(os.getenv('BATCH_DELAY_SECONDS', '0.5'))
BATCH_JOB_TIMEOUT = int(os.getenv('BATCH_JOB_TIMEOUT', '3600'))

# ── Identity matching ────────────────────────────────────────────────────────
# Comma-separated override for the free-email domain list in engine_config.yaml
FREE_EMAIL_DOMAINS = os.getenv('FREE_EMAIL_DOMAINS')

