"""
furyfence/core/paths.py: centralized path configuration

Single source of truth for the directories the site backend touches.
Every module imports from here instead of computing its own DATA_DIR.

Submissions live in DATA_DIR (override with FURYFENCE_DATA_DIR), the public
site files in SITE_DIR (override with FURYFENCE_SITE_DIR).
"""

import os
import logging

log = logging.getLogger("furyfence.paths")

# ── Project Root ──────────────────────────────────────────────────────────────
_THIS_FILE = os.path.abspath(__file__)
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(_THIS_FILE)))

_DEFAULT_DATA_DIR = os.path.join(PROJECT_ROOT, "data")
_DEFAULT_SITE_DIR = os.path.join(PROJECT_ROOT, "site")


def _resolve_data_dir() -> str:
    """FURYFENCE_DATA_DIR if set, otherwise <project>/data."""
    env_dir = os.environ.get("FURYFENCE_DATA_DIR", "")
    if env_dir:
        return os.path.abspath(env_dir)
    return _DEFAULT_DATA_DIR


DATA_DIR = _resolve_data_dir()
SITE_DIR = os.path.abspath(os.environ.get("FURYFENCE_SITE_DIR", "") or _DEFAULT_SITE_DIR)
LOG_DIR = os.path.join(DATA_DIR, "logs")

# ── Record files ──────────────────────────────────────────────────────────────
CONTACTS_FILENAME = "contact_submissions.json"
QUOTES_FILENAME = "quote_requests.json"

STORE_FILES = {
    "contact": CONTACTS_FILENAME,
    "quote": QUOTES_FILENAME,
}


def store_path(kind: str, data_dir: str = None) -> str:
    """Absolute path of the record file for an entity kind ("contact"/"quote")."""
    if kind not in STORE_FILES:
        raise ValueError(f"Unknown submission kind: {kind!r}")
    return os.path.join(data_dir or DATA_DIR, STORE_FILES[kind])


def validate_paths(data_dir: str = None, site_dir: str = None) -> dict:
    """Runtime validation, called at app startup to catch path issues early.

    Returns:
        {"ok": bool, "errors": [str], "warnings": [str], "resolved": {name: path}}
    """
    data_dir = data_dir or DATA_DIR
    site_dir = site_dir or SITE_DIR
    result = {"ok": True, "errors": [], "warnings": [], "resolved": {
        "PROJECT_ROOT": PROJECT_ROOT,
        "DATA_DIR": data_dir,
        "SITE_DIR": site_dir,
    }}

    try:
        os.makedirs(data_dir, exist_ok=True)
        test_file = os.path.join(data_dir, ".write_test")
        with open(test_file, "w") as f:
            f.write("ok")
        os.remove(test_file)
    except OSError as e:
        result["errors"].append(f"DATA_DIR not writable: {e}")
        result["ok"] = False

    if not os.path.isdir(site_dir):
        result["warnings"].append(f"SITE_DIR not found: {site_dir} (static pages will 404)")

    return result
