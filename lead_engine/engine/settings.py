"""
Engine tunables (YAML with hardcoded fallback).

Free-email domains, staleness thresholds and context caps are read from
engine_config.yaml next to this module. FREE_EMAIL_DOMAINS and the
RESCORE/SUGGEST threshold env vars override the file.
"""
import copy
import logging
import os

import yaml

from lead_engine import config

logger = logging.getLogger('engine.settings')

_engine_config = None


def _default_config():
    """Hardcoded fallback if YAML is missing."""
    return {
        'version': 'default',
        'matching': {
            'free_email_domains': [
                'gmail.com',
                'yahoo.com',
                'outlook.com',
                'hotmail.com',
                'icloud.com',
                'aol.com',
                'protonmail.com',
            ],
        },
        'staleness': {
            'rescore_threshold_days': 3,
            'suggest_threshold_hours': 24,
        },
        'context': {
            'max_threads': 10,
            'max_messages_per_thread': 5,
            'body_preview_chars': 1000,
            'max_meetings': 5,
            'max_proposals': 5,
            'max_projects': 10,
        },
        'prompts': {
            'scoring_max_emails': 20,
            'message_preview_chars': 500,
            'transcript_chars': 3000,
        },
        'materializer': {
            'link_confidence': 0.8,
            'link_thread_reasoning': 'Associated thread, approve to include in scoring context.',
            'link_transcript_reasoning': 'Associated transcript, approve to include in scoring context.',
        },
        'tiers': {
            'hot': 70,
            'warm': 40,
        },
    }


def _merge(base, override):
    """Recursively overlay override onto base (missing YAML keys keep defaults)."""
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _apply_env_overrides(cfg):
    if config.FREE_EMAIL_DOMAINS:
        cfg['matching']['free_email_domains'] = [
            d.strip().lower() for d in config.FREE_EMAIL_DOMAINS.split(',') if d.strip()
        ]
    if os.getenv('RESCORE_THRESHOLD_DAYS'):
        cfg['staleness']['rescore_threshold_days'] = config.RESCORE_THRESHOLD_DAYS
    if os.getenv('SUGGEST_THRESHOLD_HOURS'):
        cfg['staleness']['suggest_threshold_hours'] = config.SUGGEST_THRESHOLD_HOURS
    return cfg


def load_engine_config():
    """Load engine config from YAML, with in-memory cache and hardcoded fallback."""
    global _engine_config
    if _engine_config is not None:
        return _engine_config

    config_path = os.path.join(os.path.dirname(__file__), 'engine_config.yaml')
    try:
        with open(config_path, 'r') as f:
            loaded = yaml.safe_load(f) or {}
        _engine_config = _merge(_default_config(), loaded)
        logger.info("Engine config loaded from YAML (version=%s)", _engine_config.get('version', '?'))
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Engine config YAML unavailable (%s), using defaults", e)
        _engine_config = _default_config()

    _engine_config = _apply_env_overrides(_engine_config)
    return _engine_config


def reset_engine_config():
    """Drop the cached config (tests and config reloads)."""
    global _engine_config
    _engine_config = None


def free_email_domains():
    return frozenset(d.lower() for d in load_engine_config()['matching']['free_email_domains'])


def context_limits():
    return dict(load_engine_config()['context'])
