"""Extraction of ``@debtbomb`` markers from source text.

Files are treated as plain lines of text. A marker rides on any line
comment carrier (``//``, ``#``, ``--`` or ``/*``) and comes in two shapes::

    // @debtbomb(expire=2026-02-10, owner=pricing, ticket=JIRA-123)
    // @debtbomb // expire: 2026-02-10 // owner: pricing

Free-form values run until the next ``/``, ``#`` or ``*`` or the end of line.

When code precedes the carrier on the same line, that code is the marker's
snippet. Otherwise the marker waits for the next non-blank line.
"""
from __future__ import annotations
import hashlib, logging, re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Dict, Iterable, Iterator, List, Optional

from .signals import DebtItem

logger = logging.getLogger(__name__)

KEYS = ("expire", "owner", "ticket", "reason", "severity")
EOF_SNIPPET = "EOF"
SNIPPET_ID_LEN = 80

COMMENT_START = re.compile(r"^\s*(?://|#|--|/\*)")
DATE_FORMAT = re.compile(r"^\d{4}-\d{2}-\d{2}$")
PAREN_RE = re.compile(r"(?://|#|--|/\*)\s*@debtbomb\((.*?)\)")
FREEFORM_RE = re.compile(r"(?://|#|--|/\*)\s*@debtbomb\b(?!\s*\()(.*)$")
KV_RE = re.compile(r"(expire|owner|ticket|reason|severity)\s*:\s*([^/#*]+)")


def parse_date(value: str) -> Optional[date]:
    value = value.strip()
    if not DATE_FORMAT.match(value):
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        return None


def _parse_attribute_list(body: str) -> Dict[str, str]:
    attrs: Dict[str, str] = {}
    for part in body.split(","):
        part = part.strip()
        if "=" in part:
            key, val = part.split("=", 1)
        elif ":" in part:
            key, val = part.split(":", 1)
        else:
            continue
        key = key.strip()
        if key in KEYS:
            attrs[key] = val.strip()
    return attrs


def _parse_key_values(body: str) -> Dict[str, str]:
    attrs: Dict[str, str] = {}
    for m in KV_RE.finditer(body):
        attrs[m.group(1)] = m.group(2).strip()
    return attrs


@dataclass(frozen=True)
class MarkerSyntax:
    name: str
    pattern: re.Pattern
    parse: Callable[[str], Dict[str, str]]


# Tried in order; the first pattern that matches owns the line.
SYNTAXES = (
    MarkerSyntax("parenthetical", PAREN_RE, _parse_attribute_list),
    MarkerSyntax("freeform", FREEFORM_RE, _parse_key_values),
)


@dataclass
class _Marker:
    attrs: Dict[str, str]
    expire: date
    code_before: str


def _match_marker(line: str) -> Optional[_Marker]:
    for syntax in SYNTAXES:
        m = syntax.pattern.search(line)
        if not m:
            continue
        attrs = syntax.parse(m.group(1))
        expire = parse_date(attrs.get("expire", ""))
        if expire is None:
            logger.debug("Dropping %s marker without valid expire: %s", syntax.name, line.strip())
            return None
        code = line[: m.start()].strip()
        if COMMENT_START.match(code):
            code = ""
        return _Marker(attrs=attrs, expire=expire, code_before=code)
    return None


def make_id(file: str, reason: str, snippet: str) -> str:
    h = hashlib.sha1()
    h.update(file.encode("utf-8"))
    h.update(reason.encode("utf-8"))
    h.update(snippet.strip()[:SNIPPET_ID_LEN].encode("utf-8"))
    return h.hexdigest()


def _finish(file: str, line_no: int, marker: _Marker, raw: str, snippet: str) -> DebtItem:
    a = marker.attrs
    reason = a.get("reason", "")
    return DebtItem(
        id=make_id(file, reason, snippet),
        file=file,
        line=line_no,
        expire=marker.expire,
        owner=a.get("owner", ""),
        ticket=a.get("ticket", ""),
        reason=reason,
        severity=a.get("severity", ""),
        raw_text=raw,
        snippet=snippet,
    )


def extract(file: str, lines: Iterable[str]) -> Iterator[DebtItem]:
    """Yield the debt items declared in *lines* of the file named *file*."""
    pending: List[tuple] = []

    for line_no, text in enumerate(lines, start=1):
        text = text.rstrip("\r\n")
        trimmed = text.strip()
        if not trimmed:
            continue

        marker = _match_marker(text)
        if marker is not None and not marker.code_before:
            pending.append((line_no, marker, trimmed))
            continue

        if pending:
            for p_line, p_marker, p_raw in pending:
                yield _finish(file, p_line, p_marker, p_raw, trimmed)
            pending = []

        if marker is not None:
            yield _finish(file, line_no, marker, trimmed, marker.code_before)

    for p_line, p_marker, p_raw in pending:
        yield _finish(file, p_line, p_marker, p_raw, EOF_SNIPPET)


def extract_file(abspath: str, rel: str) -> List[DebtItem]:
    try:
        with open(abspath, "r", encoding="utf-8", errors="ignore") as f:
            return list(extract(rel, f))
    except OSError as e:
        logger.debug("Skipping unreadable file %s: %s", abspath, e)
        return []
