"""Extraction of funding opportunities from crawled pages and client compatibility scoring."""

__version__ = "0.1.0"
