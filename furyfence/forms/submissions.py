"""
furyfence/forms/submissions.py: normalize inbound form posts into records

Contact and quote forms post loose JSON; every field is optional. Records
always carry every field as a string (empty when missing) plus a server-side
UTC timestamp. Quote requests also get a sequential number, Q-001, Q-002 ...
assigned from the number of quotes already on file.
"""

import re
import logging
from datetime import datetime, timezone

log = logging.getLogger("furyfence.submissions")

CONTACT_FIELDS = ("name", "email", "message")

QUOTE_FIELDS = (
    "name", "email", "phone", "address",
    "fenceType", "linearFootage", "fenceHeight",
    "corners", "endpoints",
    "singleGates", "doubleGates", "cantileverGates",
    "description",
)

QUOTE_PREFIX = "Q-"
QUOTE_PAD = 3

_LEADING_INT = re.compile(r"^\s*([+-]?[0-9]+)")


def utc_timestamp() -> str:
    """Current UTC time, e.g. 2026-10-19T14:03:11.482Z."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_quote_number(n: int) -> str:
    """Q-001 ... Q-999, then Q-1000 (padding never truncates)."""
    return f"{QUOTE_PREFIX}{n:0{QUOTE_PAD}d}"


def _field(fields: dict, key: str) -> str:
    value = fields.get(key)
    if not value:
        return ""
    return value if isinstance(value, str) else str(value)


def build_contact(fields: dict) -> dict:
    fields = fields or {}
    record = {key: _field(fields, key) for key in CONTACT_FIELDS}
    record["timestamp"] = utc_timestamp()
    return record


def build_quote(fields: dict, current_count: int) -> dict:
    """Quote record numbered ``current_count + 1``."""
    fields = fields or {}
    record = {"quoteNumber": format_quote_number(current_count + 1)}
    record.update((key, _field(fields, key)) for key in QUOTE_FIELDS)
    record["timestamp"] = utc_timestamp()
    return record


def submit_contact(store, fields: dict) -> dict:
    record = store.append(build_contact(fields))
    log.info("Contact submission stored (from %s)", record["email"] or "no email")
    return record


def submit_quote(store, fields: dict) -> dict:
    """Build and append a quote request; numbering happens under the store lock."""
    record = store.append_with(lambda quotes: build_quote(fields, len(quotes)))
    log.info("Quote request %s stored", record["quoteNumber"],
             extra={"quote_number": record["quoteNumber"]})
    return record


def coerce_index(value):
    """Parse a note-update index the way the admin page has always sent it.

    Accepts ints, floats (truncated) and strings with a leading integer
    ("3", " 7", "2abc"). Returns None for anything else, including booleans.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return None
        return int(value)
    if isinstance(value, str):
        m = _LEADING_INT.match(value)
        return int(m.group(1)) if m else None
    return None
