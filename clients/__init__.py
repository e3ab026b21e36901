from .image_search_client import ImageSearchClient
from .llm_client import TextGenerationClient
from .palette_client import PaletteClient
from .site_client import FirecrawlClient, HttpSiteClient, SiteClient, build_site_client

__all__ = [
    "FirecrawlClient",
    "HttpSiteClient",
    "ImageSearchClient",
    "PaletteClient",
    "SiteClient",
    "TextGenerationClient",
    "build_site_client",
]
