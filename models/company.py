"""Pydantic models for company research data."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from utils.helpers import normalize_hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Base for models exchanged with the UI: camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Pages ─────────────────────────────────────────────────────────────────────


class PageCandidate(BaseModel):
    """A page the selector thinks is worth reading."""

    url: str
    reason: str = Field(default="", description="Short label, e.g. 'Careers page'")
    priority: int = Field(default=5, ge=1, le=10)


class FetchedDocument(BaseModel):
    """Raw response of the site service for one page."""

    url: str
    markdown: str = ""
    links: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def title(self) -> Optional[str]:
        title = self.metadata.get("title") or self.metadata.get("ogTitle")
        if isinstance(title, list):
            title = title[0] if title else None
        return title or None

    @property
    def logo_hint(self) -> Optional[str]:
        """First of: explicit logo field, then the social preview image."""
        for key in ("logo", "ogImage", "og:image", "twitterImage"):
            value = self.metadata.get(key)
            if isinstance(value, list):
                value = value[0] if value else None
            if isinstance(value, str) and value.strip():
                return value.strip()
        return None


class ScrapedPage(BaseModel):
    """One fetched page. Immutable for the lifetime of a run."""

    model_config = ConfigDict(frozen=True)

    url: str
    title: str
    content: str = ""
    logo_hint: Optional[str] = None


# ── Logos ─────────────────────────────────────────────────────────────────────


class ImageResult(BaseModel):
    """A single hit from the image search service."""

    title: str = ""
    url: str
    image_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    source: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None


class LogoCandidate(CamelModel):
    url: str
    thumbnail_url: str
    title: str = "Logo"
    source: str = "Unknown"
    width: Optional[int] = None
    height: Optional[int] = None


class LogoSearchResult(CamelModel):
    candidates: List[LogoCandidate] = Field(default_factory=list)
    query: str = ""
    search_time_ms: int = 0


# ── Colours ───────────────────────────────────────────────────────────────────


class Palette(BaseModel):
    """Swatches derived from an image; each is ``#rrggbb`` or ``None``."""

    vibrant: Optional[str] = None
    dark_vibrant: Optional[str] = None
    light_vibrant: Optional[str] = None
    muted: Optional[str] = None
    dark_muted: Optional[str] = None
    light_muted: Optional[str] = None


class ImageColors(BaseModel):
    primary: Optional[str] = None
    secondary: Optional[str] = None
    accent: Optional[str] = None

    @classmethod
    def from_palette(cls, palette: Palette) -> "ImageColors":
        return cls(
            primary=palette.vibrant or palette.dark_vibrant,
            secondary=palette.muted or palette.dark_muted,
            accent=palette.light_vibrant or palette.light_muted,
        )

    def is_empty(self) -> bool:
        return not (self.primary or self.secondary or self.accent)


class SuggestedColors(CamelModel):
    """Colours proposed by the text-generation service. Invalid hex becomes None."""

    primary: Optional[str] = None
    secondary: Optional[str] = None
    accent: Optional[str] = None
    text_color: Optional[str] = None
    button_bg: Optional[str] = None
    button_fg: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def _hex_or_none(cls, value: Any) -> Optional[str]:
        return normalize_hex(value)


class BrandColors(CamelModel):
    primary: str
    secondary: str
    accent: str
    text_color: str
    button_bg: str
    button_fg: str


# ── Extraction ────────────────────────────────────────────────────────────────


class ExtractionResult(CamelModel):
    """Structured facts pulled out of the page corpus."""

    name: Optional[str] = None
    industry: Optional[str] = None
    description: Optional[str] = None
    logo: Optional[str] = None
    suggested_colors: SuggestedColors = Field(default_factory=SuggestedColors)

    @field_validator("suggested_colors", mode="before")
    @classmethod
    def _colors_or_empty(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}

    @field_validator("logo", mode="before")
    @classmethod
    def _http_logo_only(cls, value: Any) -> Optional[str]:
        if isinstance(value, str) and value.strip().lower().startswith(("http://", "https://")):
            return value.strip()
        return None


# ── Result ────────────────────────────────────────────────────────────────────


class CompanyProfile(CamelModel):
    """The final artifact of a research run."""

    model_config = ConfigDict(frozen=True)

    name: str
    industry: str = ""
    description: str = ""
    logo: Optional[str] = None
    logo_candidates: List[LogoCandidate] = Field(default_factory=list)
    colors: BrandColors
    pages_scraped: List[str] = Field(default_factory=list)
    scraped_at: datetime = Field(default_factory=_utcnow)
    can_scan_more: bool = False
    remaining_links: List[str] = Field(default_factory=list)


class CacheEntry(BaseModel):
    """Last complete result for one normalised URL plus continuation state."""

    key: str
    result: CompanyProfile
    raw_content: str = ""
    remaining_candidates: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)


# ── Progress ──────────────────────────────────────────────────────────────────


class ProgressType(str, Enum):
    STATUS = "status"
    PAGE_SCRAPED = "page_scraped"
    ANALYZING = "analyzing"
    EXTRACTING = "extracting"
    EXTRACTION_CHUNK = "extraction_chunk"
    LOGO_SEARCH = "logo_search"
    LOGO_FOUND = "logo_found"
    COMPLETE = "complete"
    ERROR = "error"


TERMINAL_EVENTS = frozenset({ProgressType.COMPLETE, ProgressType.ERROR})


class ProgressEvent(CamelModel):
    """One notification in the progress stream of a run."""

    type: ProgressType
    message: str
    page_url: Optional[str] = None
    page_title: Optional[str] = None
    pages_scraped: Optional[int] = None
    total_pages: Optional[int] = None
    chunk: Optional[str] = None
    logo: Optional[str] = None
    logo_candidates: Optional[List[LogoCandidate]] = None
    result: Optional[CompanyProfile] = None

    @property
    def is_terminal(self) -> bool:
        return self.type in TERMINAL_EVENTS
