"""Exception taxonomy for the company research pipeline."""

from __future__ import annotations

from typing import Optional


class ResearchError(Exception):
    """Base class for all pipeline errors."""


class InvalidURLError(ResearchError):
    """Raised when a target string cannot be turned into a fetchable URL."""


class ConfigurationError(ResearchError):
    """Raised when a required service credential is missing."""


class FetchError(ResearchError):
    """Raised when a single page could not be fetched."""

    def __init__(self, url: str, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(f"{message} ({url})")
        self.url = url
        self.status_code = status_code


class SiteMapError(ResearchError):
    """Raised when site enumeration fails."""


class LogoSearchError(ResearchError):
    """Raised by the image search client. ``code`` classifies the failure."""

    def __init__(self, message: str, code: str) -> None:
        super().__init__(message)
        self.code = code


class PaletteError(ResearchError):
    """Raised when no palette can be derived from an image."""


class TextGenerationError(ResearchError):
    """Raised when the text-generation service returns nothing usable."""
