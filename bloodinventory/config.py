"""
Configuration for the blood inventory core
Reads from environment variables or env-local.js
"""

import os
import re
import sys
from pathlib import Path
from typing import Dict, Optional

# Blood types (ABO group + Rh factor)
BLOOD_TYPES = ['A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-']

# Donor eligibility rules
MIN_DONOR_AGE = 18
MAX_DONOR_AGE = 65
MIN_DONOR_WEIGHT_KG = 50
DONATION_INTERVAL_DAYS = 90

# Stock levels
LOW_STOCK_ALERT_UNITS = 5
STOCK_THRESHOLD_UNITS = 10

# REST client
PAGE_SIZE = 1000
REQUEST_TIMEOUT = 30
MAX_WRITE_ATTEMPTS = 3

DEFAULT_ENV_FILE = Path('env-local.js')

PLACEHOLDER_VALUES = {
    'YOUR_SUPABASE_URL',
    'YOUR_SUPABASE_ANON_KEY',
    'your-supabase-anon-key-here',
}

KEY_ALIASES = {
    'SUPABASE_URL': ['SUPABASE_URL'],
    'SUPABASE_API_KEY': ['SUPABASE_API_KEY', 'SUPABASE_ANON_KEY'],
    'SUPABASE_SERVICE_KEY': ['SUPABASE_SERVICE_KEY'],
}


def _clean(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    value = value.strip()
    if not value or value in PLACEHOLDER_VALUES:
        return None
    return value


def read_env_file(path: Optional[Path] = None) -> Optional[Dict[str, str]]:
    """Read configuration from an env-local.js file (window.ENV = {...})"""
    env_file = Path(path) if path else DEFAULT_ENV_FILE

    if not env_file.exists():
        return None

    config = {}
    try:
        content = env_file.read_text(encoding='utf-8')
    except OSError as e:
        print(f"WARNING: Could not read {env_file}: {e}", file=sys.stderr)
        return None

    # Ignore commented-out examples
    content = re.sub(r"^\s*//.*$", "", content, flags=re.MULTILINE)

    for names in KEY_ALIASES.values():
        for name in names:
            match = re.search(rf"\b{name}\s*:\s*['\"]([^'\"]+)['\"]", content)
            if match:
                config[name] = match.group(1)

    return config if config else None


def _lookup(source: Dict[str, str], key: str) -> Optional[str]:
    for name in KEY_ALIASES[key]:
        value = _clean(source.get(name))
        if value:
            return value
    return None


def get_config(env_file: Optional[Path] = None, environ: Optional[Dict[str, str]] = None) -> Dict[str, Optional[str]]:
    """Get configuration from environment variables or env-local.js"""
    environ = os.environ if environ is None else environ

    # Environment variables have the highest priority
    config = {key: _lookup(environ, key) for key in KEY_ALIASES}

    if config['SUPABASE_URL'] and config['SUPABASE_API_KEY']:
        return config

    file_config = read_env_file(env_file)
    if file_config:
        for key in KEY_ALIASES:
            if not config.get(key):
                config[key] = _lookup(file_config, key)

    if not config.get('SUPABASE_URL') or not config.get('SUPABASE_API_KEY'):
        raise ValueError(
            "Missing Supabase configuration. "
            "Please set SUPABASE_URL and SUPABASE_API_KEY in environment variables "
            "or ensure env-local.js exists with these values."
        )

    return config
