"""
furyfence/core/startup_checks.py: runtime self-test on app boot

Runs from create_app(). Surfaces the problems that otherwise only show up
when the first visitor submits a form:

  1. Path resolution: DATA_DIR writable, SITE_DIR present
  2. Record files: present files parse as JSON arrays
  3. Notifier: credentials present (alerts are silently off otherwise);
     every notifier secret is logged, sensitive values masked

Never raises; results are logged and returned.
"""

import json
import logging
import os

from furyfence.core import secrets
from furyfence.core.paths import STORE_FILES, validate_paths

log = logging.getLogger("furyfence.startup")


def run_startup_checks(app=None) -> dict:
    """Run all startup validation checks.

    Returns:
        {"passed": int, "failed": int, "warnings": int, "details": [...],
         "secrets": secrets.status()}
    """
    results = {"passed": 0, "failed": 0, "warnings": 0, "details": []}

    def _pass(msg):
        results["passed"] += 1
        results["details"].append(("PASS", msg))
        log.info("%s", msg)

    def _fail(msg):
        results["failed"] += 1
        results["details"].append(("FAIL", msg))
        log.error("STARTUP CHECK FAILED: %s", msg)

    def _warn(msg):
        results["warnings"] += 1
        results["details"].append(("WARN", msg))
        log.warning("%s", msg)

    config = app.config if app is not None else {}
    data_dir = config.get("DATA_DIR")
    site_dir = config.get("SITE_DIR")

    # ── 1. Paths ──────────────────────────────────────────────────────────────
    try:
        path_result = validate_paths(data_dir, site_dir)
        if path_result["ok"]:
            _pass(f"Paths valid (DATA_DIR={path_result['resolved']['DATA_DIR']})")
        for err in path_result["errors"]:
            _fail(err)
        for warn in path_result["warnings"]:
            _warn(warn)
        data_dir = path_result["resolved"]["DATA_DIR"]
    except Exception as e:
        _fail(f"Path validation error: {e}")

    # ── 2. Record files ───────────────────────────────────────────────────────
    for kind, filename in STORE_FILES.items():
        path = os.path.join(data_dir or "", filename)
        if not os.path.exists(path):
            _pass(f"{filename}: not created yet (first {kind} submission creates it)")
            continue
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            if isinstance(data, list):
                _pass(f"{filename}: {len(data)} records")
            else:
                _warn(f"{filename}: top level is {type(data).__name__}, not a list; "
                      f"note updates will fail until it is fixed")
        except (OSError, ValueError) as e:
            _warn(f"{filename}: unreadable ({e}); note updates will fail until it is fixed")

    # ── 3. Notifier ───────────────────────────────────────────────────────────
    results["secrets"] = secrets.status()
    for name, entry in results["secrets"].items():
        log.info("Secret %-14s %-18s %s", name, entry["env"], entry["value"])

    transport = secrets.notify_transport()
    if transport:
        _pass(f"Submission alerts via {transport} to {secrets.get_key('notify_to')}")
    else:
        _warn("Submission alerts disabled (set NOTIFY_FROM_EMAIL, NOTIFY_TO_EMAIL "
              "and SENDGRID_API_KEY or SMTP_HOST)")

    log.info("Startup checks: %d passed, %d failed, %d warnings",
             results["passed"], results["failed"], results["warnings"])
    return results
