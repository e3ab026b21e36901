"""Utility helper functions."""

from __future__ import annotations

import re
from typing import Iterator, List, Optional, TypeVar
from urllib.parse import urljoin, urlsplit

from utils.errors import InvalidURLError

T = TypeVar("T")

MAX_URL_LENGTH = 2048

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*://")
_HEX_RE = re.compile(r"^#?([0-9A-Fa-f]{6}|[0-9A-Fa-f]{3})$")
_TITLE_SEPARATORS = re.compile(r"[|\-–—]")
_MARKETING_WORDS = re.compile(r"\b(home|homepage|official|website|site)\b", re.IGNORECASE)
_PRIVATE_HOST_PREFIXES = ("127.", "10.", "192.168.", "172.")


# ── URLs ──────────────────────────────────────────────────────────────────────


def normalize_url(raw: str) -> str:
    """Canonicalise *raw* into ``scheme://host[:port]/path``.

    The result is both the cache key and the URL handed to fetchers.
    Query strings and fragments are dropped, the host is lower-cased and
    trailing slashes are removed, so ``normalize_url`` is idempotent.
    """
    candidate = (raw or "").strip()
    if not candidate:
        raise InvalidURLError("URL cannot be empty")
    if not _SCHEME_RE.match(candidate):
        candidate = "https://" + candidate

    try:
        parts = urlsplit(candidate)
        port = parts.port
    except ValueError as exc:
        raise InvalidURLError(f"Invalid URL format: {raw}") from exc

    scheme = parts.scheme.lower()
    if scheme not in ("http", "https"):
        raise InvalidURLError(f"Only http and https URLs are supported: {raw}")
    host = (parts.hostname or "").lower()
    if not host or " " in host:
        raise InvalidURLError(f"Invalid URL format: {raw}")

    if ":" in host:
        host = f"[{host}]"
    netloc = f"{host}:{port}" if port else host
    return f"{scheme}://{netloc}{parts.path.rstrip('/')}"


def validate_target_url(raw: str) -> str:
    """Normalise a user-supplied target and reject private or oversized URLs."""
    if raw and len(raw.strip()) > MAX_URL_LENGTH:
        raise InvalidURLError(f"URL is too long (max {MAX_URL_LENGTH} characters)")
    normalized = normalize_url(raw)
    host = (urlsplit(normalized).hostname or "").lower()
    if host == "localhost" or host.startswith(_PRIVATE_HOST_PREFIXES):
        raise InvalidURLError("Private/local URLs are not allowed")
    return normalized


def origin_of(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme.lower()}://{parts.netloc.lower()}"


def same_origin_links(links: List[str], base_url: str) -> List[str]:
    """Resolve *links* against *base_url* and keep only same-origin ones."""
    origin = origin_of(base_url)
    kept: List[str] = []
    for link in links:
        if not isinstance(link, str) or not link.strip():
            continue
        try:
            absolute = urljoin(base_url + "/", link.strip())
            if origin_of(absolute) == origin:
                kept.append(absolute.split("#", 1)[0])
        except ValueError:
            continue
    return kept


# ── Company names ─────────────────────────────────────────────────────────────


def name_from_domain(url: str) -> str:
    """``https://www.acme.com`` → ``Acme``."""
    try:
        host = (urlsplit(url if _SCHEME_RE.match(url) else "https://" + url).hostname or "")
    except ValueError:
        host = ""
    label = re.sub(r"^www\.", "", host.lower()).split(".")[0]
    if not label:
        return "Unknown Company"
    return label[0].upper() + label[1:]


def guess_company_name(title: Optional[str], url: str) -> str:
    """Guess a company name from a page title, falling back to the domain."""
    if title:
        head = _TITLE_SEPARATORS.split(title)[0]
        cleaned = re.sub(r"\s+", " ", _MARKETING_WORDS.sub("", head)).strip()
        if 0 < len(cleaned) < 50:
            return cleaned
    return name_from_domain(url)


# ── LLM output ────────────────────────────────────────────────────────────────


def find_balanced(text: str, opener: str, closer: str) -> Optional[str]:
    """Return the first balanced ``opener ... closer`` span in *text*.

    Brackets inside JSON string literals are ignored.  Returns ``None`` when
    no opener exists or the span never closes.
    """
    start = text.find(opener)
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == opener:
                depth += 1
            elif char == closer:
                depth -= 1
                if depth == 0:
                    return text[start : index + 1]
        start = text.find(opener, start + 1)
    return None


# ── Colours ───────────────────────────────────────────────────────────────────


def normalize_hex(value: Optional[str]) -> Optional[str]:
    """Return ``#RRGGBB`` for a valid hex colour, else ``None``."""
    if not isinstance(value, str):
        return None
    match = _HEX_RE.match(value.strip())
    if not match:
        return None
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return f"#{digits}"


def is_valid_hex(value: Optional[str]) -> bool:
    return isinstance(value, str) and re.fullmatch(r"#[0-9A-Fa-f]{6}", value) is not None


# ── Collections ───────────────────────────────────────────────────────────────


def chunk_list(lst: List[T], size: int) -> Iterator[List[T]]:
    """Yield successive chunks of a given size from a list."""
    for i in range(0, len(lst), size):
        yield lst[i : i + size]
