"""Adapters package initialization."""
from wishmeta.adapters.html_scraper import HTMLScraper
from wishmeta.adapters.amazon import AmazonClient

__all__ = ["HTMLScraper", "AmazonClient"]
