from .detail_magnet import DetailMagnetResolver
from .loader import load_python_plugins
from .registry import PluginRegistry
from .scraper_base import CustomScraper, ScraperBase
from .templated import TemplatedScraper

__all__ = [
    "CustomScraper",
    "DetailMagnetResolver",
    "PluginRegistry",
    "ScraperBase",
    "TemplatedScraper",
    "load_python_plugins",
]
