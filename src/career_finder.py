"""
Career Page Discoverer
Finds a company's careers page: known URL, href scan, then NL navigation
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Tuple
from urllib.parse import urljoin, urlparse

from career_validator import CareerPageValidator, is_candidate_link, same_page
from company_csv import ensure_url_protocol
from models import CareerDiscoveryResult, CompanyInput, Confidence, ValidationResult
from page_actions import NavigationError, PageActionError, PageActionProvider, dismiss_cookie_banner

logger = logging.getLogger(__name__)

NAVIGATION_INSTRUCTION = (
    "Gehe zur Seite für Stellenangebote, Bewerbung, Karriere, Arbeitsplätze, Careers, Jobs. "
    "Der Link zu der Seite kann auch ein Unterpunkt in einem Menü sein."
)
DRILL_DOWN_INSTRUCTION = (
    "Finde die Seite für 'Stellenangebote', 'Offene Stellen', 'Alle Stellen', 'Aktuelle Stellen', "
    "'Vakanz', 'Alle Jobs', 'Jobs anzeigen' oder 'Bewerbung'"
)

STRONG_HREF_TOKENS = ("stellen",)
GENERAL_HREF_TOKENS = ("karriere", "jobs", "career")

ATS_DOMAINS = (
    "workday.com",
    "workdayjobs.com",
    "myworkdayjobs.com",
    "bamboohr.com",
    "lever.co",
    "greenhouse.io",
    "smartrecruiters.com",
    "jobvite.com",
    "icims.com",
    "taleo.net",
    "successfactors.com",
)


@dataclass
class DiscoveryWaits:
    """Settle times (ms) after the discovery navigation steps"""

    navigation_ms: int = 1000
    drill_down_ms: int = 2000
    ats_render_ms: int = 2000
    cookie_ms: int = 1000

    @classmethod
    def from_config(cls, config) -> "DiscoveryWaits":
        return cls(
            navigation_ms=config.get_navigation_wait_ms(),
            drill_down_ms=config.get_drill_down_wait_ms(),
            ats_render_ms=config.get_ats_render_wait_ms(),
            cookie_ms=config.get_cookie_wait_ms(),
        )


@dataclass
class _DiscoveryContext:
    company: CompanyInput
    force_reprocess: bool
    notes: List[str] = field(default_factory=list)

    @property
    def homepage(self) -> str:
        return self.company.website


def is_external_ats(url: str, domains: Iterable[str] = ATS_DOMAINS) -> bool:
    """True when the URL's host belongs to a known applicant tracking system."""
    host = (urlparse(url or "").hostname or "").lower()
    return bool(host) and any(domain in host for domain in domains)


def find_href_candidate(hrefs: Iterable[str]) -> Optional[str]:
    """First href with a job-listing token, else first with a general career token."""
    unique: List[str] = []
    for href in hrefs:
        if is_candidate_link(href) and href not in unique:
            unique.append(href)

    strong = [h for h in unique if any(token in h.lower() for token in STRONG_HREF_TOKENS)]
    if strong:
        return strong[0]
    general = [h for h in unique if any(token in h.lower() for token in GENERAL_HREF_TOKENS)]
    return general[0] if general else None


class CareerPageDiscoverer:
    """Multi-strategy careers page search on the provider's current page"""

    def __init__(
        self,
        provider: PageActionProvider,
        validator: Optional[CareerPageValidator] = None,
        waits: Optional[DiscoveryWaits] = None,
        extra_ats_domains: Iterable[str] = (),
    ) -> None:
        self.provider = provider
        self.validator = validator or CareerPageValidator(provider)
        self.waits = waits or DiscoveryWaits()
        self.ats_domains = tuple(ATS_DOMAINS) + tuple(d.lower() for d in extra_ats_domains)

    def strategies(self) -> Tuple[Tuple[str, Callable[[_DiscoveryContext], Optional[CareerDiscoveryResult]]], ...]:
        """Ordered fallback chain; the first strategy returning a result wins."""
        return (
            ("known_url", self._try_known_url),
            ("href_scan", self._try_href_scan),
            ("nl_navigation", self._try_nl_navigation),
        )

    def discover(self, company: CompanyInput, force_reprocess: bool = False) -> CareerDiscoveryResult:
        """
        Find the careers page for a company.

        Assumes the provider already shows the company homepage with cookies dismissed.
        Never mutates the company; the caller persists result.url.
        """
        ctx = _DiscoveryContext(company=company, force_reprocess=force_reprocess)

        for name, strategy in self.strategies():
            result = strategy(ctx)
            if result is not None:
                result.notes = [*ctx.notes, *result.notes]
                logger.info(
                    "%s: careers page %s (confidence=%s, strategy=%s)",
                    company.name, result.url, result.confidence.value, name,
                )
                return result

        logger.info("%s: no careers page found", company.name)
        return CareerDiscoveryResult.not_found(ctx.notes)

    def is_external_ats(self, url: str) -> bool:
        return is_external_ats(url, self.ats_domains)

    # === Strategies ===

    def _try_known_url(self, ctx: _DiscoveryContext) -> Optional[CareerDiscoveryResult]:
        careers_url = ensure_url_protocol(ctx.company.careers_url or "")
        if not careers_url or ctx.force_reprocess:
            return None

        try:
            self.provider.goto(careers_url)
        except NavigationError as exc:
            logger.warning("%s: known careers URL unreachable: %s", ctx.company.name, exc)
            ctx.notes.append(f"Known careers URL unreachable: {exc}")
            self._return_to_homepage(ctx)
            return None

        self.provider.wait_for_timeout(self.waits.navigation_ms)
        validation = self.validator.validate(careers_url, ctx.homepage)
        return CareerDiscoveryResult(
            url=careers_url,
            discovered=False,
            confidence=validation.confidence,
            notes=["Using known careers URL", *validation.notes],
            strategy="known_url",
        )

    def _try_href_scan(self, ctx: _DiscoveryContext) -> Optional[CareerDiscoveryResult]:
        candidate = find_href_candidate(self.provider.hrefs())
        if candidate is None:
            ctx.notes.append("No suitable hrefs found")
            return None

        logger.debug("%s: href candidate %s", ctx.company.name, candidate)
        try:
            self.provider.goto(candidate)
        except NavigationError as exc:
            ctx.notes.append(f"Href navigation failed: {exc}")
            self._return_to_homepage(ctx)
            return None

        self.provider.wait_for_timeout(self.waits.navigation_ms)
        result = self._evaluate_current_page(ctx, "href_scan")
        if result is None:
            self._return_to_homepage(ctx)
        return result

    def _try_nl_navigation(self, ctx: _DiscoveryContext) -> Optional[CareerDiscoveryResult]:
        try:
            actions = self.provider.observe(NAVIGATION_INSTRUCTION)
        except PageActionError as exc:
            ctx.notes.append(f"Careers navigation lookup failed: {exc}")
            return None

        if not actions:
            ctx.notes.append("No careers navigation elements detected")
            return None

        logger.debug("%s: acting on %s", ctx.company.name, actions[0])
        try:
            self.provider.act(actions[0])
        except PageActionError as exc:
            ctx.notes.append(f"Careers navigation action failed: {exc}")
            return None

        self.provider.wait_for_timeout(self.waits.navigation_ms)
        result = self._evaluate_current_page(ctx, "nl_navigation")
        if result is None:
            ctx.notes.insert(0, "No careers navigation found")
        return result

    # === Shared steps ===

    def _evaluate_current_page(self, ctx: _DiscoveryContext, strategy: str) -> Optional[CareerDiscoveryResult]:
        """ATS detection, validation and drill-down for the page a strategy landed on."""
        current_url = self.provider.url()

        if self.is_external_ats(current_url):
            return self._evaluate_ats_page(ctx, current_url, strategy)

        validation = self.validator.validate(current_url, ctx.homepage)
        if validation.confidence is Confidence.HIGH:
            return CareerDiscoveryResult(
                url=current_url,
                discovered=True,
                confidence=validation.confidence,
                notes=list(validation.notes),
                strategy=strategy,
            )
        if validation.confidence is Confidence.MEDIUM:
            return self._drill_down(ctx, current_url, validation, strategy)

        ctx.notes.extend(validation.notes)
        ctx.notes.append(f"Rejected {current_url} (low confidence)")
        return None

    def _evaluate_ats_page(self, ctx: _DiscoveryContext, url: str, strategy: str) -> Optional[CareerDiscoveryResult]:
        logger.info("%s: external career system detected at %s", ctx.company.name, url)
        self.provider.wait_for_timeout(self.waits.ats_render_ms)
        dismiss_cookie_banner(self.provider, self.waits.cookie_ms)

        validation = self.validator.validate(url, ctx.homepage)
        notes = ["External career system detected", *validation.notes]
        if validation.confidence is Confidence.LOW:
            ctx.notes.extend(notes)
            return None

        # ATS boards are flat: medium is accepted without drill-down
        return CareerDiscoveryResult(
            url=url,
            discovered=True,
            confidence=validation.confidence,
            notes=notes,
            strategy=strategy,
        )

    def _drill_down(
        self,
        ctx: _DiscoveryContext,
        current_url: str,
        validation: ValidationResult,
        strategy: str,
    ) -> CareerDiscoveryResult:
        original = CareerDiscoveryResult(
            url=current_url,
            discovered=True,
            confidence=validation.confidence,
            notes=list(validation.notes),
            strategy=strategy,
        )
        logger.debug("%s: medium confidence, trying deeper navigation from %s", ctx.company.name, current_url)

        overview_link = validation.job_listings_page_link
        if overview_link:
            overview_link = urljoin(current_url, overview_link)

        try:
            if overview_link and is_candidate_link(overview_link) and not same_page(overview_link, current_url):
                self.provider.goto(overview_link)
            else:
                actions = self.provider.observe(DRILL_DOWN_INSTRUCTION)
                if not actions:
                    original.notes.append("No deeper job listings navigation found")
                    return original
                self.provider.act(actions[0])
            self.provider.wait_for_timeout(self.waits.drill_down_ms)
        except PageActionError as exc:
            original.notes.append(f"Deeper navigation failed: {exc}")
            return original

        deeper_url = self.provider.url()
        if same_page(deeper_url, current_url):
            original.notes.append("Deeper navigation stayed on same page")
            return original

        deeper = self.validator.validate(deeper_url, ctx.homepage)
        if deeper.confidence.rank >= original.confidence.rank:
            return CareerDiscoveryResult(
                url=deeper_url,
                discovered=True,
                confidence=deeper.confidence,
                notes=[*original.notes, f"Navigated deeper to {deeper_url}", *deeper.notes],
                strategy=strategy,
            )

        original.notes.append(f"Deeper page {deeper_url} scored {deeper.confidence.value}, keeping {current_url}")
        return original

    def _return_to_homepage(self, ctx: _DiscoveryContext) -> None:
        homepage = ensure_url_protocol(ctx.homepage)
        try:
            if same_page(self.provider.url(), homepage):
                return
            self.provider.goto(homepage)
            self.provider.wait_for_timeout(self.waits.navigation_ms)
        except NavigationError as exc:
            ctx.notes.append(f"Could not return to homepage: {exc}")
