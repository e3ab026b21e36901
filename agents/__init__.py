from .orchestrator import ResearchOrchestrator
from .site_mapper import SiteMapperAgent
from .page_selector import PageSelectorAgent
from .page_fetcher import PageFetcherAgent
from .logo_resolver import LogoResolverAgent
from .extractor import ExtractorAgent
from .color_resolver import ColorResolverAgent
from .run_state import ResearchPhase, ResearchRunState

__all__ = [
    "ResearchOrchestrator",
    "SiteMapperAgent",
    "PageSelectorAgent",
    "PageFetcherAgent",
    "LogoResolverAgent",
    "ExtractorAgent",
    "ColorResolverAgent",
    "ResearchPhase",
    "ResearchRunState",
]
