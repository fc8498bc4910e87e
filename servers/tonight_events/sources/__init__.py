"""
Source handling.

- registry: load scrape targets (CSV) and the fetch report
- fetcher: download source pages
- json_strategies / html_extractor: turn a page into EventRecords
"""

from .fetcher import fetch_sources
from .html_extractor import extract_from_html
from .json_strategies import register_strategy, strategies_for
from .registry import find_source, load_fetch_results, load_sources, save_fetch_results

__all__ = [
    "fetch_sources",
    "extract_from_html",
    "register_strategy",
    "strategies_for",
    "find_source",
    "load_fetch_results",
    "load_sources",
    "save_fetch_results",
]
