"""
Job Listing Extractor
Pulls visible postings from a validated careers page (max two extract passes)
"""

import logging
from typing import List, Optional

from models import ExtractedJob, JobExtractionSchema
from page_actions import PageActionError, PageActionProvider

logger = logging.getLogger(__name__)

JOB_EXTRACTION_INSTRUCTION = (
    "Extract all job listings visible on this careers page including title, description, location, "
    "job type, the URL of the job posting and the language of the listing (en, de or fr). "
    "Include jobs in English and German (Stellenangebote, Arbeitsplätze)."
)
LOAD_MORE_INSTRUCTION = "Click load more jobs or show more positions"

MAX_EXTRACTION_PASSES = 2


def is_valid_job_url(url: Optional[str]) -> bool:
    """Permissive check: absolute http(s), site-relative, or anything with a dot."""
    if not url or not url.strip():
        return False
    url = url.strip()
    return url.lower().startswith(("http://", "https://")) or url.startswith("/") or "." in url


class JobListingExtractor:
    """Runs the job schema extraction against the provider's current page"""

    def __init__(self, provider: PageActionProvider, pagination_wait_ms: int = 2000):
        self.provider = provider
        self.pagination_wait_ms = pagination_wait_ms

    def extract_all(self, careers_url: str) -> List[ExtractedJob]:
        """
        Extract jobs from the current page plus at most one "load more" page.

        Any page action failure stops extraction and returns what was gathered so far.
        """
        jobs: List[ExtractedJob] = []
        passes = 0
        try:
            while passes < MAX_EXTRACTION_PASSES:
                batch = self._extract_pass(careers_url)
                passes += 1
                jobs.extend(batch)
                logger.info("Extraction pass %s on %s: %s jobs", passes, careers_url, len(batch))

                if passes >= MAX_EXTRACTION_PASSES or not self._load_more():
                    break
        except PageActionError as exc:
            logger.warning("Extraction stopped on %s with %s jobs: %s", careers_url, len(jobs), exc)

        return jobs

    def _extract_pass(self, careers_url: str) -> List[ExtractedJob]:
        result = self.provider.extract(JOB_EXTRACTION_INSTRUCTION, JobExtractionSchema)
        jobs = []
        for raw in result.jobs:
            if not is_valid_job_url(raw.url):
                raw = raw.model_copy(update={"url": careers_url})
            jobs.append(raw)
        return jobs

    def _load_more(self) -> bool:
        actions = self.provider.observe(LOAD_MORE_INSTRUCTION)
        if not actions:
            logger.debug("No load-more control found")
            return False
        self.provider.act(actions[0])
        self.provider.wait_for_timeout(self.pagination_wait_ms)
        return True
