from __future__ import annotations

import logging
from datetime import datetime

from opportunity_engine.config import ExtractionSettings
from opportunity_engine.models import (
    CrawledPage,
    Opportunity,
    build_fingerprint,
    opportunity_id_for,
)
from opportunity_engine.utils.datetime_utils import utc_now
from opportunity_engine.utils.url_utils import canonicalize_url

from .amount import AmountExtractor
from .deadline import DeadlineExtractor
from .description import (
    extract_description,
    extract_full_description,
    extract_requirements,
    extract_submission_mode,
)
from .issuer import classify_issuer
from .sectors import extract_sectors
from .text import PageView
from .title import extract_title

logger = logging.getLogger(__name__)


class OpportunityExtractor:
    """Turns one classified page into an :class:`Opportunity`.

    Returns ``None`` when the page yields no usable title; any exception raised
    by a field strategy propagates to the caller.
    """

    def __init__(
        self,
        settings: ExtractionSettings | None = None,
        *,
        extraction_time: datetime | None = None,
    ) -> None:
        self.settings = settings or ExtractionSettings()
        self.extraction_time = extraction_time or utc_now()
        self.deadlines = DeadlineExtractor(self.settings, self.extraction_time.date())
        self.amounts = AmountExtractor(self.settings)

    def extract(self, page: CrawledPage) -> Opportunity | None:
        view = PageView.from_content(page.url, page.content, page.title)

        title = extract_title(view)
        if title is None:
            logger.debug("no title candidate for %s", page.url)
            return None

        issuer = classify_issuer(page.url, view.text)
        deadline = self.deadlines.extract(view)
        amount = self.amounts.extract(view, issuer.issuer_type)
        fingerprint = build_fingerprint(title, issuer.source_name)

        return Opportunity(
            id=opportunity_id_for(fingerprint),
            title=title,
            source_name=issuer.source_name,
            source_url=canonicalize_url(page.url),
            issuer_type=issuer.issuer_type,
            sectors=extract_sectors(title, view.text, issuer.issuer_type),
            description=extract_description(view) or title,
            full_description=extract_full_description(view),
            deadline=deadline.value if deadline else None,
            deadline_raw=deadline.raw if deadline else None,
            amount_min=amount.minimum,
            amount_max=amount.maximum,
            amount_raw=amount.raw,
            extraction_date=self.extraction_time,
            requirements=extract_requirements(view),
            submission_mode=extract_submission_mode(view),
        )
