"""
Shared pytest fixtures for the Fury Fence test suite.

IMPORTANT: FURYFENCE_DATA_DIR / FURYFENCE_TESTING are set BEFORE anything
from the project is imported, so the module-level app in app.py never
touches the real data/ directory or reconfigures logging.
"""
import json
import os
import sys
import tempfile

_PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

os.environ["FURYFENCE_DATA_DIR"] = tempfile.mkdtemp(prefix="furyfence-test-")
os.environ["FURYFENCE_TESTING"] = "true"

import pytest

_NOTIFY_ENV = ("SENDGRID_API_KEY", "NOTIFY_FROM_EMAIL", "NOTIFY_TO_EMAIL",
               "SMTP_HOST", "SMTP_PORT", "SMTP_USER", "SMTP_PASSWORD")


# ── Temp data directory (per-test isolation) ──────────────────────────────────

@pytest.fixture(autouse=True)
def temp_data_dir(tmp_path, monkeypatch):
    """Isolated data dir; notifier unconfigured; rate limiting off."""
    data = str(tmp_path / "data")
    os.makedirs(data, exist_ok=True)

    for var in _NOTIFY_ENV:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("DISABLE_RATE_LIMIT", "true")

    from furyfence.core import security
    security._limiter.reset()
    return data


@pytest.fixture
def site_dir(tmp_path):
    site = tmp_path / "site"
    site.mkdir()
    (site / "index.html").write_text("<html><body>Fury Fence</body></html>")
    (site / "styles.css").write_text("body { color: #333; }")
    return str(site)


# ── Flask test client ─────────────────────────────────────────────────────────

@pytest.fixture
def app(temp_data_dir, site_dir):
    """Flask app wired to the temp dirs, alerts sent synchronously."""
    from app import create_app
    return create_app({
        "TESTING": True,
        "DATA_DIR": temp_data_dir,
        "SITE_DIR": site_dir,
        "NOTIFY_ASYNC": False,
    })


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c


# ── Notifier configuration ────────────────────────────────────────────────────

@pytest.fixture
def sendgrid_env(monkeypatch):
    monkeypatch.setenv("SENDGRID_API_KEY", "SG.test-key-1234567890")
    monkeypatch.setenv("NOTIFY_FROM_EMAIL", "website@furyfence.test")
    monkeypatch.setenv("NOTIFY_TO_EMAIL", "office@furyfence.test")


@pytest.fixture
def smtp_env(monkeypatch):
    monkeypatch.setenv("SMTP_HOST", "smtp.furyfence.test")
    monkeypatch.setenv("SMTP_PORT", "2525")
    monkeypatch.setenv("SMTP_USER", "mailer")
    monkeypatch.setenv("SMTP_PASSWORD", "hunter2")
    monkeypatch.setenv("NOTIFY_FROM_EMAIL", "website@furyfence.test")
    monkeypatch.setenv("NOTIFY_TO_EMAIL", "office@furyfence.test")


# ── Stores + seed helpers ─────────────────────────────────────────────────────

def _write_json(path, obj):
    with open(path, "w") as f:
        json.dump(obj, f, indent=2)


@pytest.fixture
def contact_store(temp_data_dir):
    from furyfence.core.store import get_store
    return get_store("contact", temp_data_dir)


@pytest.fixture
def quote_store(temp_data_dir):
    from furyfence.core.store import get_store
    return get_store("quote", temp_data_dir)


@pytest.fixture
def seeded_contacts(temp_data_dir):
    """Three contact submissions already on disk; returns the file path."""
    path = os.path.join(temp_data_dir, "contact_submissions.json")
    _write_json(path, [
        {"name": "Ann Lee", "email": "ann@example.com", "message": "Gate repair?",
         "timestamp": "2026-10-01T15:00:00.000Z"},
        {"name": "Bo Park", "email": "bo@example.com", "message": "Need a call back",
         "timestamp": "2026-10-02T09:30:00.000Z", "note": "left voicemail"},
        {"name": "Cy Ortiz", "email": "cy@example.com", "message": "Pool fence",
         "timestamp": "2026-10-03T18:45:00.000Z"},
    ])
    return path


# ── Sample payloads ───────────────────────────────────────────────────────────

@pytest.fixture
def sample_quote():
    """A fully filled quote form post."""
    return {
        "name": "Jane Doe",
        "email": "jane@example.com",
        "phone": "555-0100",
        "address": "12 Oak Lane, Springfield",
        "fenceType": "Cedar privacy",
        "linearFootage": "180",
        "fenceHeight": "6ft",
        "corners": "4",
        "endpoints": "2",
        "singleGates": "1",
        "doubleGates": "1",
        "cantileverGates": "0",
        "description": "Replace old chain link along the back lot line.",
    }


@pytest.fixture
def sample_contact():
    return {"name": "Jane", "email": "j@x.com", "message": "Hi"}
