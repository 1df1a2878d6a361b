"""
Data Cleaner - normalizes raw extracted jobs into JobListing records
Trims text, maps job types (English + German), drops invalid and duplicate rows
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from typing import Dict, Iterable, List, Optional, Tuple, Union
from urllib.parse import urlparse

from models import ExtractedJob, JobListing, JobType, LanguageOfListing, ProcessingResult, utc_now_iso

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_LENGTH = 5000

# Checked in order; first group with a substring hit wins
JOB_TYPE_SYNONYMS: Tuple[Tuple[JobType, Tuple[str, ...]], ...] = (
    (JobType.FULL_TIME, ("full", "vollzeit", "festanstellung", "unbefristet", "permanent")),
    (JobType.PART_TIME, ("part", "teilzeit", "minijob", "geringfügig")),
    (JobType.CONTRACT, (
        "contract", "freelance", "befristet", "zeitarbeit", "projektarbeit", "freiberuflich", "selbstständig",
    )),
    (JobType.INTERNSHIP, ("intern", "praktikum", "praktikant", "trainee", "volontariat", "ausbildung")),
    (JobType.REMOTE, ("remote", "home", "homeoffice", "fernarbeit", "mobil")),
    (JobType.HYBRID, ("hybrid", "flexibel", "mixed")),
)

LANGUAGE_SYNONYMS: Dict[str, LanguageOfListing] = {
    "en": LanguageOfListing.ENGLISH,
    "english": LanguageOfListing.ENGLISH,
    "englisch": LanguageOfListing.ENGLISH,
    "de": LanguageOfListing.GERMAN,
    "german": LanguageOfListing.GERMAN,
    "deutsch": LanguageOfListing.GERMAN,
    "fr": LanguageOfListing.FRENCH,
    "french": LanguageOfListing.FRENCH,
    "französisch": LanguageOfListing.FRENCH,
    "français": LanguageOfListing.FRENCH,
    "francais": LanguageOfListing.FRENCH,
}

_WHITESPACE = re.compile(r"\s+")


def clean_text(value: Optional[str], max_length: Optional[int] = None) -> str:
    """Trim and collapse whitespace (newlines, tabs) to single spaces."""
    if not value:
        return ""
    text = _WHITESPACE.sub(" ", str(value)).strip()
    if max_length is not None:
        text = text[:max_length]
    return text


def normalize_job_type(value: Optional[str]) -> Optional[Union[JobType, str]]:
    """Map a job type synonym to JobType; unmatched values pass through unchanged."""
    if not value or not value.strip():
        return None
    lowered = value.strip().lower()
    for job_type, synonyms in JOB_TYPE_SYNONYMS:
        if any(term in lowered for term in synonyms):
            return job_type
    return value.strip()


def normalize_language(value: Optional[str]) -> Optional[LanguageOfListing]:
    if not value:
        return None
    key = value.strip().lower()
    if key in LANGUAGE_SYNONYMS:
        return LANGUAGE_SYNONYMS[key]
    # Locale tags like "de-DE"
    return LANGUAGE_SYNONYMS.get(key.split("-")[0].split("_")[0])


def _is_absolute_url(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class DataCleaner:
    """Turns untrusted ExtractedJob records into JobListing output records"""

    def __init__(self, max_description_length: int = MAX_DESCRIPTION_LENGTH):
        self.max_description_length = max_description_length

    def clean(self, raw: ExtractedJob, company: str, run_id: str) -> Optional[JobListing]:
        """Return a cleaned JobListing, or None when title or company is empty."""
        title = clean_text(raw.title)
        company_name = clean_text(company)
        if not title or not company_name:
            return None

        return JobListing(
            id=str(uuid.uuid4()),
            company=company_name,
            title=title,
            description=clean_text(raw.description, self.max_description_length) or None,
            location=clean_text(raw.location) or None,
            type=normalize_job_type(raw.type),
            url=(raw.url or "").strip() or None,
            language_of_listing=normalize_language(raw.language_of_listing),
            scrape_timestamp=utc_now_iso(),
            scrape_run_id=run_id,
        )

    @staticmethod
    def deduplicate(jobs: Iterable[JobListing]) -> Tuple[List[JobListing], int]:
        """
        Collapse jobs sharing (title, company), case-insensitively.

        The record with the longest description wins; on equal length the first one stays.
        Returns (kept_jobs, removed_count).
        """
        kept: Dict[Tuple[str, str], JobListing] = {}
        total = 0
        for job in jobs:
            total += 1
            key = (job.title.lower(), job.company.lower())
            existing = kept.get(key)
            if existing is None or len(job.description or "") > len(existing.description or ""):
                kept[key] = job
        return list(kept.values()), total - len(kept)

    def process(self, raws: List[ExtractedJob], company: str, run_id: str) -> ProcessingResult:
        """Clean then de-duplicate a batch of raw jobs from one company."""
        start = time.perf_counter()
        cleaned = [job for job in (self.clean(raw, company, run_id) for raw in raws) if job is not None]
        deduped, duplicates = self.deduplicate(cleaned)

        result = ProcessingResult(
            processed_jobs=deduped,
            duplicates_removed=duplicates,
            invalid_jobs_removed=len(raws) - len(cleaned),
            original_count=len(raws),
            final_count=len(deduped),
            processing_time_ms=int((time.perf_counter() - start) * 1000),
        )
        logger.debug(
            "Cleaned %s jobs for %s: %s invalid, %s duplicates",
            len(raws), company, result.invalid_jobs_removed, result.duplicates_removed,
        )
        return result

    @staticmethod
    def validate_job(job: JobListing) -> Tuple[bool, List[str]]:
        """Quality checks for a cleaned job. Returns (is_valid, issues)."""
        issues: List[str] = []

        if not (job.title or "").strip():
            issues.append("Missing job title")
        if not (job.company or "").strip():
            issues.append("Missing company name")
        if job.title and len(job.title) < 3:
            issues.append("Job title too short")
        if job.description and len(job.description) < 20:
            issues.append("Job description too short")
        if job.url and not _is_absolute_url(job.url):
            issues.append("Invalid job URL")

        return not issues, issues

    @staticmethod
    def generate_quality_report(result: ProcessingResult) -> str:
        jobs = result.processed_jobs
        count = len(jobs)
        success_rate = (result.final_count / result.original_count * 100) if result.original_count else 0.0
        avg_title = round(sum(len(j.title) for j in jobs) / count) if count else 0
        avg_description = round(sum(len(j.description or "") for j in jobs) / count) if count else 0

        lines = [
            "Job Processing Quality Report",
            "================================",
            f"Original jobs: {result.original_count}",
            f"Invalid jobs removed: {result.invalid_jobs_removed}",
            f"Duplicates removed: {result.duplicates_removed}",
            f"Final job count: {result.final_count}",
            f"Processing time: {result.processing_time_ms}ms",
            "",
            "Quality Metrics:",
            f"- Success rate: {success_rate:.1f}%",
            f"- Average title length: {avg_title}",
            f"- Average description length: {avg_description}",
            f"- Jobs with location: {sum(1 for j in jobs if j.location)}",
            f"- Jobs with type: {sum(1 for j in jobs if j.type)}",
            f"- Jobs with URL: {sum(1 for j in jobs if j.url)}",
        ]
        return "\n".join(lines)
