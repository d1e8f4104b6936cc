from __future__ import annotations

import hashlib
import re
from typing import Optional
from urllib.parse import parse_qsl, unquote, urlencode, urlsplit, urlunsplit

DOI_RE = re.compile(r"^10\.\d{4,}/[-._;()/:A-Z0-9]+$", re.IGNORECASE)
URL_HASH_RE = re.compile(r"^[a-f0-9]{16}$")

_DOI_PREFIX_RE = re.compile(r"^\s*doi\s*:\s*", re.IGNORECASE)
_DOI_HOST_RE = re.compile(r"^https?://(dx\.)?doi\.org/", re.IGNORECASE)
_QUOTES_RE = re.compile(r"[\"'“”‘’]")
_TRAILING_PUNCT_RE = re.compile(r"[.,;:)\]}>]+$")

# (pattern, transform) pairs tried in order against a URL.
_URL_DOI_PATTERNS = [
    (re.compile(r"doi\.org/(.+)$", re.IGNORECASE), unquote),
    (re.compile(r"/doi/(?:abs/|full/|pdf/)?(10\..+?)(?:\?|#|$)", re.IGNORECASE), unquote),
    (re.compile(r"[?&]doi=([^&#\s]+)", re.IGNORECASE), unquote),
    (
        re.compile(r"arxiv\.org/(?:abs|pdf)/(\d{4}\.\d{4,5})", re.IGNORECASE),
        lambda m: f"10.48550/arXiv.{m}",
    ),
    (
        re.compile(r"(?:bio|med)rxiv\.org/content/(10\.\d+/[^?#\s]+?)(?:v\d+)?(?:\.full.*)?$", re.IGNORECASE),
        unquote,
    ),
    (
        re.compile(r"ssrn\.com/(?:abstract=|sol3/papers\.cfm\?abstract_id=|papers\.cfm\?abstract_id=)(\d+)", re.IGNORECASE),
        lambda m: f"10.2139/ssrn.{m}",
    ),
]

TRACKING_PARAMS = {
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_content",
    "utm_term",
    "ref",
    "fbclid",
    "gclid",
    "_ga",
}


def clean_doi(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    cleaned = value.strip()
    cleaned = _DOI_PREFIX_RE.sub("", cleaned)
    cleaned = _DOI_HOST_RE.sub("", cleaned)
    cleaned = _QUOTES_RE.sub("", cleaned).strip()
    cleaned = _TRAILING_PUNCT_RE.sub("", cleaned)
    return cleaned or None


def is_valid_doi(value: Optional[str]) -> bool:
    cleaned = clean_doi(value)
    if not cleaned:
        return False
    return bool(DOI_RE.match(cleaned))


def extract_doi_from_url(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    for pattern, transform in _URL_DOI_PATTERNS:
        match = pattern.search(url)
        if not match:
            continue
        candidate = clean_doi(transform(match.group(1)))
        if candidate and is_valid_doi(candidate):
            return candidate
    return None


def normalize_doi(value: Optional[str]) -> Optional[str]:
    """Reduce any DOI spelling (bare, ``doi:``, doi.org URL, publisher URL) to ``10.x/y``."""
    if not value:
        return None
    text = value.strip()
    if _DOI_HOST_RE.match(text) or _DOI_PREFIX_RE.match(text):
        return clean_doi(text)
    if text.lower().startswith(("http://", "https://")):
        return extract_doi_from_url(text)
    return clean_doi(text)


def is_url(value: Optional[str]) -> bool:
    if not value:
        return False
    return value.strip().lower().startswith(("http://", "https://"))


def normalize_url(url: str) -> str:
    text = url.strip()
    try:
        parts = urlsplit(text)
    except ValueError:
        return text
    if not parts.scheme or not parts.netloc:
        return text
    query = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key not in TRACKING_PARAMS
    ]
    path = parts.path or "/"
    return urlunsplit(
        (parts.scheme.lower(), parts.netloc.lower(), path, urlencode(query), "")
    )


def hash_url(url: str) -> str:
    normalized = normalize_url(url)
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()[:16]


def is_url_hash(value: Optional[str]) -> bool:
    return bool(value) and bool(URL_HASH_RE.match(value))
