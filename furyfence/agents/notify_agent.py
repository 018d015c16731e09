"""
notify_agent.py: new-submission alert email

Every stored contact message or quote request can be announced by email to
the office inbox. Delivery is best-effort: the submission is already on disk
before anything here runs, failures are logged and dropped, and nothing is
retried.

CHANNELS (first configured wins):
  1. SendGrid v3 API   SENDGRID_API_KEY
  2. SMTP (STARTTLS)   SMTP_HOST, SMTP_PORT, SMTP_USER, SMTP_PASSWORD
Both need NOTIFY_FROM_EMAIL and NOTIFY_TO_EMAIL; see core/secrets.py.
"""

import os
import html
import logging
import threading

import requests

from furyfence.core import secrets
from furyfence.forms.submissions import CONTACT_FIELDS, QUOTE_FIELDS

log = logging.getLogger("furyfence.notify")

SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"
TIMEOUT = float(os.environ.get("NOTIFY_TIMEOUT", "10"))

FIELD_LABELS = {
    "quoteNumber": "Quote #",
    "name": "Name",
    "email": "Email",
    "phone": "Phone",
    "address": "Address",
    "message": "Message",
    "fenceType": "Fence type",
    "linearFootage": "Linear footage",
    "fenceHeight": "Fence height",
    "corners": "Corners",
    "endpoints": "End posts",
    "singleGates": "Single gates",
    "doubleGates": "Double gates",
    "cantileverGates": "Cantilever gates",
    "description": "Project description",
    "timestamp": "Received",
}

_KIND_FIELDS = {
    "contact": CONTACT_FIELDS,
    "quote": ("quoteNumber",) + QUOTE_FIELDS,
}


# ══════════════════════════════════════════════════════════════════════════════
# MAIN ENTRY POINT
# ══════════════════════════════════════════════════════════════════════════════

def send_submission_alert(kind: str, record: dict, run_async: bool = True) -> dict:
    """Announce a new submission. Never raises.

    Returns {"ok": False, "reason": ...} when alerts are not configured,
    {"ok": True, "async": True} when dispatched to a background thread, or
    the transport result when run synchronously.
    """
    try:
        transport = secrets.notify_transport()
        if not transport:
            log.debug("Alert skipped (%s): notifier not configured", kind)
            return {"ok": False, "reason": "not configured"}

        if run_async:
            t = threading.Thread(
                target=_dispatch_alert,
                args=(transport, kind, dict(record)),
                daemon=True,
                name=f"alert-{kind}",
            )
            t.start()
            return {"ok": True, "async": True}

        return _dispatch_alert(transport, kind, record)
    except Exception as e:
        log.warning("Alert for %s submission failed: %s", kind, e)
        return {"ok": False, "error": str(e)}


def _dispatch_alert(transport: str, kind: str, record: dict) -> dict:
    try:
        message = build_message(kind, record)
        if transport == "sendgrid":
            result = _send_sendgrid(message)
        else:
            result = _send_smtp(message)
    except Exception as e:
        result = {"ok": False, "error": str(e)}

    if result.get("ok"):
        log.info("Alert sent via %s: %s", transport, message["subject"], extra={"kind": kind})
    else:
        log.warning("Alert via %s failed: %s", transport,
                    result.get("error", "unknown error"), extra={"kind": kind})
    return result


# ══════════════════════════════════════════════════════════════════════════════
# MESSAGE
# ══════════════════════════════════════════════════════════════════════════════

def _clean_header_value(s) -> str:
    """Strip CR/LF so submitted values cannot inject headers."""
    if s is None:
        return ""
    return str(s).replace("\r", " ").replace("\n", " ").strip()


def build_subject(kind: str, record: dict) -> str:
    name = _clean_header_value(record.get("name")) or "website visitor"
    if kind == "quote":
        number = _clean_header_value(record.get("quoteNumber"))
        return f"New quote request {number} from {name}".replace("  ", " ")
    return f"New contact message from {name}"


def build_message(kind: str, record: dict) -> dict:
    """Subject, plain-text and HTML bodies, and reply-to for an alert."""
    fields = _KIND_FIELDS.get(kind, tuple(record.keys())) + ("timestamp",)
    rows = [(FIELD_LABELS.get(k, k), str(record.get(k) or "")) for k in fields]
    rows = [(label, value) for label, value in rows if value]

    plain = "\n".join(f"{label}: {value}" for label, value in rows)
    table = "".join(
        f"<tr><td style=\"padding:4px 12px 4px 0;color:#555\">{html.escape(label)}</td>"
        f"<td style=\"padding:4px 0\">{html.escape(value).replace(chr(10), '<br>')}</td></tr>"
        for label, value in rows
    )
    subject = build_subject(kind, record)
    body_html = (
        "<html><body style=\"font-family:Arial,sans-serif\">"
        f"<h2 style=\"color:#c94a44\">{html.escape(subject)}</h2>"
        f"<table style=\"border-collapse:collapse;font-size:14px\">{table}</table>"
        "</body></html>"
    )
    reply_to = _clean_header_value(record.get("email"))
    return {
        "subject": subject,
        "text": plain,
        "html": body_html,
        "reply_to": reply_to if "@" in reply_to else "",
        "from": secrets.get_key("notify_from"),
        "to": secrets.get_key("notify_to"),
    }


# ══════════════════════════════════════════════════════════════════════════════
# SENDGRID
# ══════════════════════════════════════════════════════════════════════════════

def _send_sendgrid(message: dict) -> dict:
    payload = {
        "personalizations": [{"to": [{"email": message["to"]}]}],
        "from": {"email": message["from"], "name": "Fury Fence Website"},
        "subject": message["subject"],
        "content": [
            {"type": "text/plain", "value": message["text"] or "(empty submission)"},
            {"type": "text/html", "value": message["html"]},
        ],
    }
    if message.get("reply_to"):
        payload["reply_to"] = {"email": message["reply_to"]}

    try:
        r = requests.post(
            SENDGRID_URL,
            json=payload,
            headers={"Authorization": f"Bearer {secrets.get_key('sendgrid_key')}"},
            timeout=TIMEOUT,
        )
    except requests.RequestException as e:
        return {"ok": False, "error": f"SendGrid request failed: {e}"}

    if r.status_code >= 300:
        return {"ok": False, "error": f"SendGrid HTTP {r.status_code}: {r.text[:200]}"}
    return {"ok": True, "to": message["to"], "status": r.status_code}


# ══════════════════════════════════════════════════════════════════════════════
# SMTP
# ══════════════════════════════════════════════════════════════════════════════

def _send_smtp(message: dict) -> dict:
    import smtplib
    from email.mime.multipart import MIMEMultipart
    from email.mime.text import MIMEText

    msg = MIMEMultipart("alternative")
    msg["From"] = f"Fury Fence Website <{message['from']}>"
    msg["To"] = message["to"]
    msg["Subject"] = message["subject"]
    if message.get("reply_to"):
        msg["Reply-To"] = message["reply_to"]
    msg.attach(MIMEText(message["text"], "plain"))
    msg.attach(MIMEText(message["html"], "html"))

    host = secrets.get_key("smtp_host")
    port = int(secrets.get_key("smtp_port") or 587)
    user = secrets.get_key("smtp_user")
    password = secrets.get_key("smtp_password")

    try:
        with smtplib.SMTP(host, port, timeout=TIMEOUT) as server:
            server.starttls()
            if user:
                server.login(user, password)
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        return {"ok": False, "error": f"SMTP send failed: {e}"}
    return {"ok": True, "to": message["to"]}
