"""
Tonight's Events scraper

Batch pipeline that:
- Fetches venue and aggregator calendar pages listed in a source registry
- Extracts event listings (embedded JSON, JSON-LD, CSS selectors)
- Flags events happening today and groups them by region and venue
- Optionally asks a language model to clean up and merge the listings

Run with: python -m servers.tonight_events run
"""

__version__ = "1.0.0"
