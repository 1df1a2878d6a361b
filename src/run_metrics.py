"""
Run Metrics - counters and events for one batch run, written as JSON after the run
"""

import json
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from models import CompanyScrapingResult, ScrapingStatus, utc_now_iso

DEFAULT_METRICS_TEMPLATE = "output/run_metrics_{timestamp}.json"


@dataclass
class RunMetrics:
    """
    Counters and events for one batch run.

    Company failures are expected on live sites; they are counted, not raised.
    """

    pipeline: str
    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    started_at: str = field(default_factory=utc_now_iso)
    ended_at: Optional[str] = None
    companies_selected: int = 0
    companies_skipped: int = 0
    counters: Dict[str, int] = field(default_factory=dict)
    events: List[Dict[str, Any]] = field(default_factory=list)
    _clock_start: float = field(default_factory=time.monotonic, repr=False)
    _clock_end: Optional[float] = field(default=None, repr=False)

    @property
    def duration_seconds(self) -> float:
        end = self._clock_end if self._clock_end is not None else time.monotonic()
        return max(end - self._clock_start, 0.0)

    def inc(self, key: str, amount: int = 1) -> None:
        self.counters[key] = self.counters.get(key, 0) + amount

    def record_selection(self, selected: int, skipped: int) -> None:
        """How many CSV rows the mode picks up and how many it leaves alone."""
        self.companies_selected = selected
        self.companies_skipped = skipped

    def record_event(self, kind: str, **data: Any) -> None:
        event: Dict[str, Any] = {"t": utc_now_iso(), "kind": kind}
        event.update({k: v for k, v in data.items() if v is not None})
        self.events.append(event)

    def record_company(self, result: CompanyScrapingResult) -> None:
        """Fold one company outcome into the counters."""
        self.inc("companies_processed")
        if result.status is ScrapingStatus.SUCCESS:
            self.inc("companies_successful")
        else:
            self.inc("companies_failed")
            self.record_event("company_failed", company=result.company, error=result.error)
        if result.discovered:
            self.inc("careers_urls_discovered")
        if result.strategy:
            self.inc(f"discovery_strategy.{result.strategy}")
        if result.confidence is not None:
            self.inc(f"confidence.{result.confidence.value}")
        self.inc("jobs_extracted", len(result.job_listings))

    def finish(self) -> None:
        if self.ended_at is None:
            self.ended_at = utc_now_iso()
            self._clock_end = time.monotonic()

    def to_dict(self, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "pipeline": self.pipeline,
            "run_id": self.run_id,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "duration_seconds": round(self.duration_seconds, 3),
            "companies": {"selected": self.companies_selected, "skipped": self.companies_skipped},
            "counters": dict(sorted(self.counters.items())),
            "events": list(self.events),
        }
        payload.update(extra or {})
        return payload

    def write_json(self, template: str = DEFAULT_METRICS_TEMPLATE, extra: Optional[Dict[str, Any]] = None) -> Path:
        """Write the metrics file; `{timestamp}` in the template is filled in."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        path = Path((template or DEFAULT_METRICS_TEMPLATE).replace("{timestamp}", timestamp))
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(extra), indent=2, ensure_ascii=False), encoding="utf-8")
        return path
