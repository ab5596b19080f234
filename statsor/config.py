"""
Configuration constants for Statsor
"""
import json
import logging
import os

# Data directory for the JSON store
DATA_DIR = os.environ.get('DATA_DIR', 'data')

# Limit value meaning "no cap" for a resource kind
UNLIMITED = -1

# Usage above this percentage of a bounded limit is flagged as near the limit
NEAR_LIMIT_PERCENT = 80

# Resource kind -> usage counter name
USAGE_COUNTERS = {
    'teams': 'teamsCreated',
    'players': 'playersCreated',
    'matches': 'matchesCreated',
}

# Plan tier -> per-resource-kind creation limits
PLAN_LIMITS = {
    'free': {
        'teams': 2,
        'players': 25,
        'matches': 10,
    },
    'pro': {
        'teams': 10,
        'players': UNLIMITED,
        'matches': UNLIMITED,
    },
    'enterprise': {
        'teams': UNLIMITED,
        'players': UNLIMITED,
        'matches': UNLIMITED,
    },
}

# Plan display metadata (USD)
PLAN_PRICING = {
    'free': {'name': 'Free', 'amount': 0, 'currency': 'USD', 'interval': 'month'},
    'pro': {'name': 'Pro', 'amount': 29.99, 'currency': 'USD', 'interval': 'month'},
    'enterprise': {'name': 'Enterprise', 'amount': 99.99, 'currency': 'USD', 'interval': 'month'},
}

# Most restrictive tier, used for identities without a subscription record
DEFAULT_TIER = os.environ.get('STATSOR_DEFAULT_TIER', 'free').strip() or 'free'

# Dashboard list sizes
UPCOMING_MATCHES_LIMIT = 3
RECENT_MATCHES_LIMIT = 5


def load_plan_limits(raw=None):
    """Return the plan tier table, optionally overridden by STATSOR_PLAN_LIMITS (JSON)"""
    if raw is None:
        raw = os.environ.get('STATSOR_PLAN_LIMITS', '').strip()
    if not raw:
        return {tier: dict(limits) for tier, limits in PLAN_LIMITS.items()}

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise RuntimeError(f"STATSOR_PLAN_LIMITS is not valid JSON: {e}")

    if not isinstance(data, dict) or not data:
        raise RuntimeError("STATSOR_PLAN_LIMITS must be a non-empty object of {tier: {kind: limit}}")

    plan_limits = {}
    for tier, limits in data.items():
        if not isinstance(limits, dict):
            raise RuntimeError(f"Limits for tier '{tier}' must be an object")
        for kind, limit in limits.items():
            if not isinstance(limit, int) or isinstance(limit, bool) or limit < UNLIMITED:
                raise RuntimeError(f"Limit for '{tier}.{kind}' must be an integer >= {UNLIMITED}")
        plan_limits[tier] = dict(limits)
    return plan_limits


def configure_logging(level=None):
    """Configure root logging from LOG_LEVEL"""
    level_name = (level or os.environ.get('LOG_LEVEL', 'INFO')).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
