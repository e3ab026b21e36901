from .company import (
    BrandColors,
    CacheEntry,
    CompanyProfile,
    ExtractionResult,
    FetchedDocument,
    ImageColors,
    ImageResult,
    LogoCandidate,
    LogoSearchResult,
    PageCandidate,
    Palette,
    ProgressEvent,
    ProgressType,
    ScrapedPage,
    SuggestedColors,
)

__all__ = [
    "BrandColors",
    "CacheEntry",
    "CompanyProfile",
    "ExtractionResult",
    "FetchedDocument",
    "ImageColors",
    "ImageResult",
    "LogoCandidate",
    "LogoSearchResult",
    "PageCandidate",
    "Palette",
    "ProgressEvent",
    "ProgressType",
    "ScrapedPage",
    "SuggestedColors",
]
