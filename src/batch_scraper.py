"""
Batch Scraper - processes companies one at a time with anti-bot pacing
Discovery, extraction and cleaning per company; failures never stop the batch
"""

from __future__ import annotations

import logging
import random
import signal
import time
from enum import Enum
from typing import Callable, Dict, List, Optional

from career_finder import CareerPageDiscoverer, DiscoveryWaits
from career_validator import CareerPageValidator, same_page
from company_csv import ensure_url_protocol
from data_cleaner import DataCleaner
from job_extractor import JobListingExtractor
from models import (
    BatchScrapingResult,
    BatchSummary,
    CompanyInput,
    CompanyScrapingResult,
    ScrapingStatus,
    utc_now_iso,
)
from page_actions import PageActionError, PageActionProvider, dismiss_cookie_banner
from run_metrics import RunMetrics

logger = logging.getLogger(__name__)

PROGRESS_BAR_WIDTH = 20


class BatchMode(str, Enum):
    DISCOVER = "discover"
    EXTRACT = "extract"
    FULL = "full"


def render_progress_bar(done: int, total: int, width: int = PROGRESS_BAR_WIDTH) -> str:
    ratio = (done / total) if total else 1.0
    filled = min(width, int(round(ratio * width)))
    return f"{'█' * filled}{'░' * (width - filled)} {ratio * 100:.0f}%"


def format_eta(seconds: Optional[float]) -> str:
    if seconds is None:
        return "calculating..."
    seconds = max(int(round(seconds)), 0)
    minutes, secs = divmod(seconds, 60)
    return f"{minutes}m {secs}s"


def build_summary(results: List[CompanyScrapingResult]) -> BatchSummary:
    successful = [r for r in results if r.status is ScrapingStatus.SUCCESS]
    total_jobs = sum(len(r.job_listings) for r in results)
    top = sorted(successful, key=lambda r: len(r.job_listings), reverse=True)[:3]

    return BatchSummary(
        total_jobs_found=total_jobs,
        average_jobs_per_company=round(total_jobs / len(successful)) if successful else 0,
        average_processing_time_ms=(
            round(sum(r.processing_time_ms for r in results) / len(results)) if results else 0
        ),
        top_performing_companies=[f"{r.company} ({len(r.job_listings)} jobs)" for r in top if r.job_listings],
        problematic_websites=[r.website for r in results if r.status is not ScrapingStatus.SUCCESS],
    )


class BatchScraper:
    """Runs the per-company pipeline over a company list on a single page provider"""

    def __init__(
        self,
        config,
        provider: Optional[PageActionProvider] = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
    ):
        self.config = config
        self.provider = provider
        self._owns_provider = provider is None
        self.sleep = sleep
        self.rng = rng or random.Random()
        self.interrupted = False
        self.metrics: Optional[RunMetrics] = None
        self._previous_handlers: Dict[int, object] = {}

    # === Lifecycle ===

    def start(self) -> None:
        """Start the browser if no provider was injected. Failure here is fatal for the run."""
        if self.provider is None:
            from browser_agent import BrowserAgent

            self.provider = BrowserAgent(self.config)
        if self._owns_provider:
            self.provider.start()

    def stop(self) -> None:
        if self._owns_provider and self.provider is not None:
            self.provider.stop()

    def _components(self):
        waits = DiscoveryWaits.from_config(self.config)
        discoverer = CareerPageDiscoverer(
            self.provider,
            CareerPageValidator(self.provider),
            waits,
            self.config.get_extra_ats_domains(),
        )
        extractor = JobListingExtractor(self.provider, self.config.get_pagination_wait_ms())
        cleaner = DataCleaner(self.config.get_max_description_length())
        return discoverer, extractor, cleaner

    # === Interrupt handling ===

    def _handle_signal(self, signum, frame) -> None:
        if self.interrupted:
            logger.warning("Second interrupt received, stopping immediately")
            raise KeyboardInterrupt
        self.interrupted = True
        logger.warning("Received signal %s, stopping after the current company", signum)
        print("\n⚠️  Interrupt received - finishing current company, then stopping")

    def install_signal_handlers(self) -> None:
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                self._previous_handlers[sig] = signal.signal(sig, self._handle_signal)
            except ValueError:
                # Only the main thread may install handlers
                logger.debug("Cannot install handler for %s outside the main thread", sig)

    def restore_signal_handlers(self) -> None:
        for sig, handler in self._previous_handlers.items():
            signal.signal(sig, handler)
        self._previous_handlers.clear()

    # === Pacing ===

    def next_delay(self) -> float:
        """Seconds to wait before the next company, always within the 2-5s window"""
        if self.config.use_random_delay():
            low, high = self.config.get_min_delay(), self.config.get_max_delay()
            return self.rng.uniform(min(low, high), max(low, high))
        return self.config.get_fixed_delay()

    # === Per-company pipeline ===

    def scrape_company(
        self,
        company: CompanyInput,
        mode: BatchMode = BatchMode.FULL,
        force_reprocess: bool = False,
        run_id: str = "",
    ) -> CompanyScrapingResult:
        """Run one company through the pipeline. Never raises for company-level failures."""
        start = time.perf_counter()
        discoverer, extractor, cleaner = self._components()
        result = CompanyScrapingResult(
            company=company.name,
            website=company.website,
            status=ScrapingStatus.FAILED,
        )

        try:
            if mode is BatchMode.EXTRACT:
                result.careers_url = ensure_url_protocol(company.careers_url)
                self.provider.goto(result.careers_url)
                self.provider.wait_for_timeout(discoverer.waits.navigation_ms)
                dismiss_cookie_banner(self.provider, discoverer.waits.cookie_ms)
            else:
                self.provider.goto(ensure_url_protocol(company.website))
                self.provider.wait_for_timeout(discoverer.waits.navigation_ms)
                dismiss_cookie_banner(self.provider, discoverer.waits.cookie_ms)

                discovery = discoverer.discover(company, force_reprocess=force_reprocess)
                result.notes.extend(discovery.notes)
                result.strategy = discovery.strategy
                if discovery.url is None:
                    result.error = "Could not find careers page"
                    return self._finish(result, start)

                result.careers_url = discovery.url
                result.confidence = discovery.confidence
                result.discovered = discovery.discovered

                if mode is BatchMode.DISCOVER:
                    result.status = ScrapingStatus.SUCCESS
                    return self._finish(result, start)

                if not same_page(self.provider.url(), discovery.url):
                    self.provider.goto(discovery.url)
                    self.provider.wait_for_timeout(discoverer.waits.navigation_ms)

            raw_jobs = extractor.extract_all(result.careers_url)
            processing = cleaner.process(raw_jobs, company.name, run_id)
            result.job_listings = processing.processed_jobs
            for job in result.job_listings:
                valid, issues = cleaner.validate_job(job)
                if not valid:
                    logger.debug("Quality issues for %s: %s", job, ", ".join(issues))
            logger.debug("%s\n%s", company.name, cleaner.generate_quality_report(processing))

            if not result.job_listings:
                result.error = "No job listings found"
            else:
                result.status = ScrapingStatus.SUCCESS
        except PageActionError as exc:
            logger.warning("Company %s failed: %s", company.name, exc)
            result.status = ScrapingStatus.FAILED
            result.error = str(exc)
        except Exception as exc:
            logger.exception("Company %s failed", company.name)
            result.status = ScrapingStatus.FAILED
            result.error = str(exc) or exc.__class__.__name__

        return self._finish(result, start)

    @staticmethod
    def _finish(result: CompanyScrapingResult, start: float) -> CompanyScrapingResult:
        result.processing_time_ms = int((time.perf_counter() - start) * 1000)
        return result

    # === Batch loop ===

    def select_companies(self, companies: List[CompanyInput], mode: BatchMode, force_reprocess: bool) -> List[int]:
        """Indices of the companies the mode will process"""
        if mode is BatchMode.EXTRACT:
            return [i for i, c in enumerate(companies) if c.careers_url]
        if mode is BatchMode.DISCOVER:
            return [i for i, c in enumerate(companies) if force_reprocess or not c.careers_url]
        return list(range(len(companies)))

    def process_companies(
        self,
        companies: List[CompanyInput],
        mode: BatchMode = BatchMode.FULL,
        force_reprocess: bool = False,
    ) -> BatchScrapingResult:
        """Process companies strictly one after another and return the batch result with write-back applied."""
        self.interrupted = False
        self.metrics = RunMetrics(pipeline=mode.value)
        run_id = self.metrics.run_id
        start_time = utc_now_iso()
        updated = list(companies)
        selected = self.select_companies(updated, mode, force_reprocess)
        results: List[CompanyScrapingResult] = []

        skipped = len(companies) - len(selected)
        self.metrics.record_selection(len(selected), skipped)

        print("\n" + "=" * 60)
        print(f"🤖 CAREER SCOUT - {mode.value.upper()} ({len(selected)} companies)")
        print("=" * 60)
        if skipped:
            print(f"⏭️  Skipping {skipped} companies not applicable to {mode.value} mode")

        loop_start = time.monotonic()
        self.install_signal_handlers()
        try:
            for position, index in enumerate(selected):
                if self.interrupted:
                    break

                company = updated[index]
                self._print_progress(position, len(selected), results, loop_start, company)

                result = self.scrape_company(company, mode, force_reprocess, run_id)
                if self.interrupted:
                    logger.warning("Discarding in-flight result for %s", company.name)
                    break

                results.append(result)
                self.metrics.record_company(result)
                if result.discovered and result.careers_url:
                    updated[index] = company.model_copy(update={"careers_url": result.careers_url})
                self._print_outcome(result)

                if position < len(selected) - 1 and not self.interrupted:
                    delay = self.next_delay()
                    print(f"   ⏳ Waiting {delay:.1f}s before next company...")
                    self.sleep(delay)
        finally:
            self.restore_signal_handlers()

        if self.interrupted:
            self.metrics.record_event("interrupted", processed=len(results), remaining=len(selected) - len(results))

        self.drop_duplicate_jobs(results)

        batch = BatchScrapingResult(
            run_id=run_id,
            start_time=start_time,
            end_time=utc_now_iso(),
            total_companies=len(selected),
            successful_companies=sum(1 for r in results if r.status is ScrapingStatus.SUCCESS),
            failed_companies=sum(1 for r in results if r.status is not ScrapingStatus.SUCCESS),
            interrupted=self.interrupted,
            results=results,
            summary=build_summary(results),
            companies=updated,
        )
        self.metrics.finish()
        self._print_summary(batch)
        return batch

    def drop_duplicate_jobs(self, results: List[CompanyScrapingResult]) -> int:
        """Remove jobs already listed under another company row (same title and company, any case)."""
        kept, removed = DataCleaner.deduplicate([job for r in results for job in r.job_listings])
        if not removed:
            return 0
        kept_ids = {job.id for job in kept}
        for result in results:
            result.job_listings = [job for job in result.job_listings if job.id in kept_ids]
        self.metrics.inc("duplicate_jobs_removed", removed)
        logger.info("Removed %s duplicate jobs across companies", removed)
        return removed

    # === Display ===

    def _print_progress(self, position, total, results, loop_start, company) -> None:
        succeeded = sum(1 for r in results if r.status is ScrapingStatus.SUCCESS)
        failed = len(results) - succeeded
        eta = None
        if results:
            average = (time.monotonic() - loop_start) / len(results)
            eta = average * (total - position)
        print(f"\n┌ [{position + 1}/{total}] {company.name} ({company.website})")
        print(f"│ Progress: {render_progress_bar(position, total)}")
        print(f"│ Success: {succeeded} | Failed: {failed} | ETA: {format_eta(eta)}")
        print("└" + "─" * 40)

    def _print_outcome(self, result: CompanyScrapingResult) -> None:
        seconds = result.processing_time_ms / 1000
        if result.status is ScrapingStatus.SUCCESS:
            confidence = result.confidence.value if result.confidence else "n/a"
            print(f"   ✅ {result.company}: {len(result.job_listings)} jobs "
                  f"(careers: {result.careers_url}, confidence: {confidence}, {seconds:.1f}s)")
        else:
            print(f"   ❌ {result.company}: {result.error} ({seconds:.1f}s)")

    def _print_summary(self, batch: BatchScrapingResult) -> None:
        print("\n" + "=" * 60)
        if batch.interrupted:
            print("⚠️  BATCH INTERRUPTED - partial results kept")
        else:
            print("📊 BATCH COMPLETE")
        print("=" * 60)
        print(f"  Companies processed: {len(batch.results)}/{batch.total_companies}")
        print(f"  Successful: {batch.successful_companies} | Failed: {batch.failed_companies}")
        print(f"  Total jobs: {batch.summary.total_jobs_found}")
        if batch.summary.top_performing_companies:
            print(f"  Top companies: {', '.join(batch.summary.top_performing_companies)}")
        if batch.summary.problematic_websites:
            print(f"  Problematic websites: {', '.join(batch.summary.problematic_websites)}")
        print("=" * 60 + "\n")
        logger.info(
            "Batch %s finished: %s/%s successful, %s jobs, interrupted=%s",
            batch.run_id, batch.successful_companies, len(batch.results),
            batch.summary.total_jobs_found, batch.interrupted,
        )
