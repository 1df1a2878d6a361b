"""
Career Page Validator - confidence tiering for a candidate careers URL

The tier is computed by an ordered list of small rules over one accumulator.
Order matters: content signals first, then the negative-keyword downgrade,
then the generic-title override, then URL evidence last.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from models import Confidence, PageContentSignal, ValidationResult
from page_actions import PageActionError, PageActionProvider

logger = logging.getLogger(__name__)

CAREER_KEYWORDS = ("jobs", "stellenangebote", "positionen", "bewerbung", "karriere", "job", "career")
NEGATIVE_KEYWORDS = ("news", "about", "contact", "product", "service", "über uns")
GENERIC_TITLES = ("jobs", "willkommen im team", "company news", "about us")
STRONG_URL_KEYWORDS = ("stellenangebote", "stellen")
WEAK_URL_KEYWORDS = ("job", "career", "karriere", "bewerbung")

VALIDATION_INSTRUCTION = (
    "Describe this page: its title, its main headings, whether job postings are listed on it, "
    "whether it contains a job application form, the link to the page listing all open positions "
    "if this page only links to such an overview, and a short summary of its text content."
)


def normalize_url_for_comparison(url: str) -> str:
    """Lowercase, drop scheme, leading www. and trailing slash."""
    normalized = (url or "").strip().lower()
    normalized = re.sub(r"^[a-z][a-z0-9+.-]*://", "", normalized)
    if normalized.startswith("www."):
        normalized = normalized[4:]
    return normalized.rstrip("/")


def same_page(first: str, second: str) -> bool:
    return normalize_url_for_comparison(first) == normalize_url_for_comparison(second)


@dataclass
class _ValidationState:
    url: str
    signal: PageContentSignal
    text: str
    confidence: Confidence = Confidence.LOW
    notes: List[str] = field(default_factory=list)


def _combined_text(signal: PageContentSignal) -> str:
    parts = [signal.page_title or "", *(signal.headings or []), signal.text_content or ""]
    return " ".join(parts).lower()


def score_career_keywords(state: _ValidationState) -> None:
    matches = [kw for kw in CAREER_KEYWORDS if kw in state.text]
    if len(matches) >= 2:
        state.confidence = Confidence.HIGH
    elif len(matches) == 1:
        state.confidence = Confidence.MEDIUM
    else:
        state.confidence = Confidence.LOW
    state.notes.append(f"Career keywords found: {', '.join(matches) if matches else 'none'}")


def apply_job_listings_signal(state: _ValidationState) -> None:
    if state.signal.has_job_listings:
        state.confidence = Confidence.HIGH
        state.notes.append("Page contains visible job listings")


def apply_application_form_signal(state: _ValidationState) -> None:
    if state.signal.has_application_form:
        state.confidence = Confidence.HIGH
        state.notes.append("Page contains an application form")


def downgrade_negative_keywords(state: _ValidationState) -> None:
    matches = [kw for kw in NEGATIVE_KEYWORDS if kw in state.text]
    if matches:
        state.confidence = state.confidence.downgraded()
        state.notes.append(f"Negative keywords found: {', '.join(matches)}")


def override_generic_title(state: _ValidationState) -> None:
    text = " ".join(state.text.split())
    generic = [title for title in GENERIC_TITLES if title in text]
    if generic:
        state.confidence = Confidence.LOW
        state.notes.append(f"Generic page title: {generic[0]}")


def apply_url_keywords(state: _ValidationState) -> None:
    url = state.url.lower()
    if any(kw in url for kw in STRONG_URL_KEYWORDS):
        state.confidence = Confidence.HIGH
        state.notes.append("URL contains stellenangebote-related keywords")
    elif any(kw in url for kw in WEAK_URL_KEYWORDS):
        state.notes.append("URL contains career-related keywords")
        if state.confidence is Confidence.LOW:
            state.confidence = Confidence.MEDIUM


RULES: Tuple[Callable[[_ValidationState], None], ...] = (
    score_career_keywords,
    apply_job_listings_signal,
    apply_application_form_signal,
    downgrade_negative_keywords,
    override_generic_title,
    apply_url_keywords,
)


def score_page(url: str, signal: PageContentSignal) -> ValidationResult:
    """Run the rule pipeline over an already extracted content signal."""
    state = _ValidationState(url=url, signal=signal, text=_combined_text(signal))
    for rule in RULES:
        rule(state)
    return ValidationResult(
        confidence=state.confidence,
        notes=state.notes,
        job_listings_page_link=signal.link_to_job_listing_overview or None,
    )


class CareerPageValidator:
    """Decides how likely the current page is a company's careers page"""

    def __init__(self, provider: PageActionProvider) -> None:
        self.provider = provider

    def validate(self, candidate_url: str, homepage_url: str) -> ValidationResult:
        if same_page(candidate_url, homepage_url):
            return ValidationResult(
                confidence=Confidence.LOW,
                notes=["URL is same as website homepage"],
            )

        try:
            signal = self.provider.extract(VALIDATION_INSTRUCTION, PageContentSignal)
        except PageActionError as exc:
            logger.warning("Validation extract failed for %s: %s", candidate_url, exc)
            return ValidationResult(confidence=Confidence.LOW, notes=[f"Validation error: {exc}"])

        result = score_page(candidate_url, signal)
        logger.info("Validated %s -> %s (%s)", candidate_url, result.confidence.value, "; ".join(result.notes))
        return result


def is_candidate_link(href: Optional[str]) -> bool:
    return bool(href) and href.lower().startswith(("http://", "https://"))
