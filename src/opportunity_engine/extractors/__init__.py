"""Field extractors for crawled opportunity pages."""

from .amount import AmountExtractor, AmountRange, parse_italian_number
from .deadline import DeadlineExtractor, DeadlineMatch
from .description import extract_description
from .issuer import IssuerInfo, classify_issuer
from .page_extractor import OpportunityExtractor
from .sectors import extract_sectors
from .text import PageView, clean_text, html_to_text
from .title import extract_title

__all__ = [
    "AmountExtractor",
    "AmountRange",
    "DeadlineExtractor",
    "DeadlineMatch",
    "IssuerInfo",
    "OpportunityExtractor",
    "PageView",
    "classify_issuer",
    "clean_text",
    "extract_description",
    "extract_sectors",
    "extract_title",
    "html_to_text",
    "parse_italian_number",
]
