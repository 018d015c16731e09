"""
Fury Fence site routes

Public form endpoints (contact, quote), note updates used by the office
admin page, read-only listings for that page, and the static site itself.
Registered on the app by app.create_app().
"""
import time
import logging

from flask import Blueprint, current_app, jsonify, request, send_from_directory

from furyfence.agents.notify_agent import send_submission_alert
from furyfence.core import secrets
from furyfence.core.security import rate_limit
from furyfence.core.store import IndexOutOfRange, StoreUnreadable, get_store
from furyfence.forms.submissions import coerce_index, submit_contact, submit_quote

log = logging.getLogger("furyfence.routes")

bp = Blueprint("site", __name__)

READ_ERRORS = {
    "contact": "Failed to read contact submissions.",
    "quote": "Failed to read quote requests.",
}


# ── Request-level structured logging ────────────────────────────────────────
@bp.before_app_request
def _log_request_start():
    request._start_time = time.time()


@bp.after_app_request
def _log_request_end(response):
    if hasattr(request, "_start_time") and request.path.startswith("/api/") \
            and request.path != "/api/health":
        duration_ms = round((time.time() - request._start_time) * 1000, 1)
        log.info("%s %s -> %d (%.0fms)",
                 request.method, request.path, response.status_code, duration_ms,
                 extra={"route": request.path, "method": request.method,
                        "status": response.status_code, "duration_ms": duration_ms})
    return response


# ═══════════════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════════════

def _store(kind):
    return get_store(kind, current_app.config["DATA_DIR"])


def _payload() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _notify(kind, record):
    try:
        send_submission_alert(kind, record,
                              run_async=current_app.config.get("NOTIFY_ASYNC", True))
    except Exception as e:
        log.warning("Notifier error for %s submission: %s", kind, e)


def _update_note(kind):
    data = _payload()
    index = coerce_index(data.get("index"))
    if index is None:
        log.warning("Note update on %s rejected: bad index %r", kind, data.get("index"))
        return jsonify({"error": "Invalid index."}), 400
    try:
        _store(kind).update_note(index, data.get("note"))
    except StoreUnreadable as e:
        log.error("Note update on %s failed: %s", kind, e)
        return jsonify({"error": READ_ERRORS[kind]}), 500
    except IndexOutOfRange as e:
        log.warning("Note update on %s rejected: %s", kind, e, extra={"index": index})
        return jsonify({"error": "Invalid index."}), 400
    log.info("Note updated on %s #%d", kind, index, extra={"kind": kind, "index": index})
    return jsonify({"success": True})


# ═══════════════════════════════════════════════════════════════════════
# Form endpoints
# ═══════════════════════════════════════════════════════════════════════

@bp.route("/api/contact", methods=["POST"])
@rate_limit("forms")
def api_contact():
    record = submit_contact(_store("contact"), _payload())
    _notify("contact", record)
    return jsonify({"success": True})


@bp.route("/api/quote", methods=["POST"])
@rate_limit("forms")
def api_quote():
    record = submit_quote(_store("quote"), _payload())
    _notify("quote", record)
    return jsonify({"success": True})


@bp.route("/api/update-quote-note", methods=["POST"])
def api_update_quote_note():
    return _update_note("quote")


@bp.route("/api/update-contact-note", methods=["POST"])
def api_update_contact_note():
    return _update_note("contact")


# ═══════════════════════════════════════════════════════════════════════
# Admin listings + health
# ═══════════════════════════════════════════════════════════════════════

@bp.route("/api/contacts")
def api_contacts():
    return jsonify(_store("contact").load_all())


@bp.route("/api/quotes")
def api_quotes():
    return jsonify(_store("quote").load_all())


@bp.route("/api/health")
def api_health():
    return jsonify({
        "ok": True,
        "contacts": _store("contact").count(),
        "quotes": _store("quote").count(),
        "notify": secrets.notify_configured(),
    })


# ═══════════════════════════════════════════════════════════════════════
# Static site
# ═══════════════════════════════════════════════════════════════════════

@bp.route("/")
def index():
    return send_from_directory(current_app.config["SITE_DIR"], "index.html")


@bp.route("/<path:filename>")
def site_file(filename):
    return send_from_directory(current_app.config["SITE_DIR"], filename)
