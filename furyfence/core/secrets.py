"""
secrets.py: notifier credential registry

Single source of truth for the environment variables the site reads for
outbound email. Nothing here is required: with no credentials set, new
submissions are still stored and simply not announced.

Env vars:
  SENDGRID_API_KEY   SendGrid v3 API key (preferred transport)
  NOTIFY_FROM_EMAIL  Sender address (must be verified with the provider)
  NOTIFY_TO_EMAIL    Where new-submission alerts go
  SMTP_HOST          SMTP fallback when no API key is set
  SMTP_PORT          default 587
  SMTP_USER / SMTP_PASSWORD

Keys are never logged in full (masked to the first few chars).
"""

import os
import logging

log = logging.getLogger("furyfence.secrets")

# ─── Secret Definitions ─────────────────────────────────────────────────────

_REGISTRY = {
    "sendgrid_key": {
        "env": "SENDGRID_API_KEY",
        "desc": "SendGrid API key for alert email",
        "sensitive": True,
    },
    "notify_from": {
        "env": "NOTIFY_FROM_EMAIL",
        "desc": "Sender address for alert email",
    },
    "notify_to": {
        "env": "NOTIFY_TO_EMAIL",
        "desc": "Recipient of new-submission alerts",
    },
    "smtp_host": {
        "env": "SMTP_HOST",
        "desc": "SMTP server (fallback transport)",
    },
    "smtp_port": {
        "env": "SMTP_PORT",
        "desc": "SMTP port",
        "default": "587",
    },
    "smtp_user": {
        "env": "SMTP_USER",
        "desc": "SMTP login",
    },
    "smtp_password": {
        "env": "SMTP_PASSWORD",
        "desc": "SMTP password",
        "sensitive": True,
    },
}


# ─── Public API ──────────────────────────────────────────────────────────────

def get_key(name: str) -> str:
    """Get a secret value by registry name. Returns empty string if not set."""
    entry = _REGISTRY.get(name)
    if not entry:
        log.warning("Unknown secret requested: %s", name)
        return ""
    val = os.environ.get(entry["env"], "").strip()
    if not val and "default" in entry:
        val = entry["default"]
    return val


def mask(value: str) -> str:
    """Mask a secret for safe logging."""
    if not value:
        return "(not set)"
    if len(value) <= 12:
        return value[:4] + "****"
    return value[:8] + "****" + f"({len(value)} chars)"


def notify_transport() -> str:
    """"sendgrid", "smtp", or "" when alerts cannot be sent."""
    if not (get_key("notify_from") and get_key("notify_to")):
        return ""
    if get_key("sendgrid_key"):
        return "sendgrid"
    if get_key("smtp_host"):
        return "smtp"
    return ""


def notify_configured() -> bool:
    return bool(notify_transport())


def status() -> dict:
    """Which secrets are set, for the health endpoint and boot log. Values masked."""
    out = {}
    for name, entry in _REGISTRY.items():
        val = get_key(name)
        out[name] = {
            "env": entry["env"],
            "set": bool(os.environ.get(entry["env"], "").strip()),
            "value": mask(val) if entry.get("sensitive") else (val or "(not set)"),
            "desc": entry["desc"],
        }
    return out
