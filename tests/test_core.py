"""
Tests for the supporting modules: paths, secrets, security, startup checks,
logging configuration and the app factory.
"""
import json
import logging
import os

import pytest

from furyfence.core import paths, secrets
from furyfence.core.security import RateLimiter
from furyfence.core.startup_checks import run_startup_checks


# ═══════════════════════════════════════════════════════════════════════════════
# Paths
# ═══════════════════════════════════════════════════════════════════════════════

class TestPaths:

    def test_store_path(self, temp_data_dir):
        assert paths.store_path("quote", temp_data_dir).endswith("quote_requests.json")

    def test_store_path_unknown(self):
        with pytest.raises(ValueError):
            paths.store_path("invoice")

    def test_validate_ok(self, temp_data_dir, site_dir):
        result = paths.validate_paths(temp_data_dir, site_dir)
        assert result["ok"] is True
        assert result["errors"] == []
        assert result["resolved"]["DATA_DIR"] == temp_data_dir

    def test_validate_missing_site_is_warning(self, temp_data_dir, tmp_path):
        result = paths.validate_paths(temp_data_dir, str(tmp_path / "no-site"))
        assert result["ok"] is True
        assert any("SITE_DIR" in w for w in result["warnings"])

    def test_validate_creates_data_dir(self, tmp_path, site_dir):
        target = tmp_path / "fresh" / "data"
        assert paths.validate_paths(str(target), site_dir)["ok"] is True
        assert target.is_dir()


# ═══════════════════════════════════════════════════════════════════════════════
# Secrets
# ═══════════════════════════════════════════════════════════════════════════════

class TestSecrets:

    def test_unset_is_empty(self):
        assert secrets.get_key("sendgrid_key") == ""

    def test_unknown_name(self):
        assert secrets.get_key("nope") == ""

    def test_default_port(self):
        assert secrets.get_key("smtp_port") == "587"

    def test_mask(self):
        assert secrets.mask("") == "(not set)"
        assert secrets.mask("short") == "shor****"
        masked = secrets.mask("SG.abcdefghijklmnopqrstuvwxyz")
        assert masked.startswith("SG.abcde****")
        assert "xyz" not in masked

    def test_transport_selection(self, monkeypatch):
        assert secrets.notify_transport() == ""
        monkeypatch.setenv("NOTIFY_FROM_EMAIL", "a@b.test")
        monkeypatch.setenv("NOTIFY_TO_EMAIL", "c@d.test")
        assert secrets.notify_transport() == ""
        monkeypatch.setenv("SMTP_HOST", "smtp.test")
        assert secrets.notify_transport() == "smtp"
        monkeypatch.setenv("SENDGRID_API_KEY", "SG.key")
        assert secrets.notify_transport() == "sendgrid"
        assert secrets.notify_configured() is True

    def test_status_masks_sensitive(self, sendgrid_env):
        st = secrets.status()
        assert st["sendgrid_key"]["set"] is True
        assert "test-key-1234567890" not in st["sendgrid_key"]["value"]
        assert st["notify_to"]["value"] == "office@furyfence.test"
        assert st["smtp_host"]["set"] is False


# ═══════════════════════════════════════════════════════════════════════════════
# Rate limiter
# ═══════════════════════════════════════════════════════════════════════════════

class TestRateLimiter:

    def test_burst_then_block(self):
        limiter = RateLimiter()
        results = [limiter.check("1.2.3.4:forms", max_tokens=3, refill_rate=0.0) for _ in range(4)]
        assert results == [True, True, True, False]

    def test_keys_independent(self):
        limiter = RateLimiter()
        assert limiter.check("a", max_tokens=1, refill_rate=0.0)
        assert not limiter.check("a", max_tokens=1, refill_rate=0.0)
        assert limiter.check("b", max_tokens=1, refill_rate=0.0)

    def test_cleanup(self):
        limiter = RateLimiter()
        limiter.check("old")
        limiter.cleanup(max_age=-1)
        assert limiter._buckets == {}

    def test_maybe_cleanup_waits_for_interval(self):
        limiter = RateLimiter()
        limiter.check("idle")
        limiter._buckets["idle"]["last_refill"] -= 7200
        assert limiter.maybe_cleanup(interval=600) == 0
        assert "idle" in limiter._buckets

        limiter._last_cleanup -= 601
        assert limiter.maybe_cleanup(interval=600) == 1
        assert limiter._buckets == {}


# ═══════════════════════════════════════════════════════════════════════════════
# Startup checks
# ═══════════════════════════════════════════════════════════════════════════════

class TestStartupChecks:

    def test_clean_boot(self, app):
        results = run_startup_checks(app)
        assert results["failed"] == 0
        # notifier off -> one warning
        assert results["warnings"] == 1

    def test_corrupt_store_is_warning(self, app, temp_data_dir):
        with open(os.path.join(temp_data_dir, "quote_requests.json"), "w") as f:
            f.write("not json")
        results = run_startup_checks(app)
        assert results["failed"] == 0
        assert any("quote_requests.json" in msg for level, msg in results["details"]
                   if level == "WARN")

    def test_counts_records(self, app, seeded_contacts):
        results = run_startup_checks(app)
        assert ("PASS", "contact_submissions.json: 3 records") in results["details"]

    def test_notifier_configured(self, app, sendgrid_env):
        results = run_startup_checks(app)
        assert results["warnings"] == 0

    def test_secrets_logged_masked(self, app, sendgrid_env, caplog):
        with caplog.at_level(logging.INFO, logger="furyfence.startup"):
            results = run_startup_checks(app)
        assert results["secrets"]["sendgrid_key"]["set"] is True
        assert "SENDGRID_API_KEY" in caplog.text
        assert "SG.test-" in caplog.text
        assert "test-key-1234567890" not in caplog.text


# ═══════════════════════════════════════════════════════════════════════════════
# Logging
# ═══════════════════════════════════════════════════════════════════════════════

class TestLogging:

    @pytest.fixture
    def restore_root(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        for h in root.handlers:
            if h not in handlers:
                h.close()
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_json_formatter_extras(self):
        from logging_config import JSONFormatter
        record = logging.LogRecord("furyfence.routes", logging.INFO, __file__, 10,
                                   "POST %s", ("/api/quote",), None)
        record.route = "/api/quote"
        record.quote_number = "Q-004"
        entry = json.loads(JSONFormatter().format(record))
        assert entry["msg"] == "POST /api/quote"
        assert entry["level"] == "INFO"
        assert entry["route"] == "/api/quote"
        assert entry["quote_number"] == "Q-004"
        assert entry["ts"].endswith("Z")

    def test_human_formatter(self):
        from logging_config import HumanFormatter
        record = logging.LogRecord("furyfence.store", logging.WARNING, __file__, 1,
                                   "disk full", (), None)
        line = HumanFormatter().format(record)
        assert "[W] furyfence.store: disk full" in line

    def test_setup_writes_log_file(self, tmp_path, restore_root):
        from logging_config import setup_logging
        log_dir = tmp_path / "logs"
        setup_logging(level="DEBUG", json_logs=True, log_dir=str(log_dir))
        logging.getLogger("furyfence.test").info("hello")
        for h in logging.getLogger().handlers:
            h.flush()
        lines = (log_dir / "site.log").read_text().splitlines()
        assert any(json.loads(line)["msg"] == "hello" for line in lines)


# ═══════════════════════════════════════════════════════════════════════════════
# App factory
# ═══════════════════════════════════════════════════════════════════════════════

class TestCreateApp:

    def test_config_overrides(self, app, temp_data_dir, site_dir):
        assert app.config["DATA_DIR"] == temp_data_dir
        assert app.config["SITE_DIR"] == site_dir
        assert app.config["NOTIFY_ASYNC"] is False

    def test_routes_registered(self, app):
        rules = {r.rule for r in app.url_map.iter_rules()}
        for rule in ("/api/contact", "/api/quote", "/api/update-quote-note",
                     "/api/update-contact-note", "/api/contacts", "/api/quotes",
                     "/api/health", "/"):
            assert rule in rules
