"""
Data models for Career Scout
Defines companies, discovery/validation results, and job listings
"""

from enum import Enum
from typing import List, Optional, Union
from datetime import datetime, timezone
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class Confidence(str, Enum):
    """Coarse estimate of whether a URL is really a careers page"""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _CONFIDENCE_RANK[self]

    def upgraded(self) -> "Confidence":
        return _CONFIDENCE_BY_RANK[min(self.rank + 1, 2)]

    def downgraded(self) -> "Confidence":
        return _CONFIDENCE_BY_RANK[max(self.rank - 1, 0)]

    @staticmethod
    def best(first: "Confidence", second: "Confidence") -> "Confidence":
        """Higher of two tiers; ties return the second one."""
        return first if first.rank > second.rank else second


_CONFIDENCE_RANK = {Confidence.LOW: 0, Confidence.MEDIUM: 1, Confidence.HIGH: 2}
_CONFIDENCE_BY_RANK = {rank: tier for tier, rank in _CONFIDENCE_RANK.items()}


class JobType(str, Enum):
    FULL_TIME = "full-time"
    PART_TIME = "part-time"
    CONTRACT = "contract"
    INTERNSHIP = "internship"
    REMOTE = "remote"
    HYBRID = "hybrid"
    UNKNOWN = "unknown"


class LanguageOfListing(str, Enum):
    ENGLISH = "en"
    GERMAN = "de"
    FRENCH = "fr"


class ScrapingStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    PARTIAL = "partial"
    SKIPPED = "skipped"


class CompanyInput(BaseModel):
    """A company row from the input CSV"""

    name: str
    website: str
    careers_url: Optional[str] = None  # write-back cache, filled by discovery

    def __str__(self) -> str:
        return f"{self.name} ({self.website})"


class ValidationResult(BaseModel):
    confidence: Confidence
    notes: List[str] = Field(default_factory=list)
    job_listings_page_link: Optional[str] = None


class CareerDiscoveryResult(BaseModel):
    """Outcome of one careers page search for one company"""

    url: Optional[str] = None
    discovered: bool = False
    confidence: Confidence = Confidence.LOW
    notes: List[str] = Field(default_factory=list)
    strategy: Optional[str] = None

    @model_validator(mode="after")
    def _no_url_means_low(self) -> "CareerDiscoveryResult":
        if self.url is None:
            self.confidence = Confidence.LOW
            self.discovered = False
        return self

    @classmethod
    def not_found(cls, notes: List[str]) -> "CareerDiscoveryResult":
        return cls(url=None, discovered=False, confidence=Confidence.LOW, notes=list(notes))


class PageContentSignal(BaseModel):
    """What the validator asks the extraction primitive about a page"""

    page_title: Optional[str] = Field(default="", description="The title of the page")
    headings: List[str] = Field(default_factory=list, description="The main headings visible on the page")
    has_job_listings: bool = Field(default=False, description="Whether there are visible job listings on the page")
    has_application_form: bool = Field(default=False, description="Whether the page contains a job application form")
    link_to_job_listing_overview: Optional[str] = Field(
        default=None,
        description="Absolute URL of a page that lists all open positions, if this page only links to it",
    )
    text_content: Optional[str] = Field(default="", description="A short summary of the general text content")


class ExtractedJob(BaseModel):
    """Raw, untrusted job record as returned by the extraction primitive"""

    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = Field(default="", description="The exact job title as displayed on the page")
    description: Optional[str] = Field(default="", description="The job description, summary or requirements text")
    location: Optional[str] = Field(default=None, description="The job location (city, country, 'Remote') or null")
    type: Optional[str] = Field(default=None, description="Employment type, e.g. full-time, Teilzeit, internship")
    url: Optional[str] = Field(default=None, description="The href of the apply/view job link")
    language_of_listing: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("language_of_listing", "languageOfListing"),
        description="ISO language code of the listing (en, de, fr)",
    )


class JobExtractionSchema(BaseModel):
    jobs: List[ExtractedJob] = Field(default_factory=list)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class JobListing(_CamelModel):
    """Cleaned job listing as written to the jobs JSON"""

    id: str
    company: str
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    type: Optional[Union[JobType, str]] = None  # unmapped values pass through
    url: Optional[str] = None
    language_of_listing: Optional[LanguageOfListing] = None
    scrape_timestamp: str = Field(default_factory=utc_now_iso)
    scrape_run_id: str = ""

    def __str__(self) -> str:
        return f"{self.title} at {self.company}"


class ScrapingMetadata(_CamelModel):
    run_id: str
    run_timestamp: str
    total_jobs: int = 0
    companies_processed: int = 0
    companies_successful: int = 0
    companies_failed: int = 0


class JobsOutput(_CamelModel):
    metadata: ScrapingMetadata
    jobs: List[JobListing] = Field(default_factory=list)


class CompanyScrapingResult(BaseModel):
    company: str
    website: str
    status: ScrapingStatus
    careers_url: Optional[str] = None
    confidence: Optional[Confidence] = None
    discovered: bool = False
    strategy: Optional[str] = None
    job_listings: List[JobListing] = Field(default_factory=list)
    error: Optional[str] = None
    notes: List[str] = Field(default_factory=list)
    processing_time_ms: int = 0


class ProcessingResult(BaseModel):
    processed_jobs: List[JobListing] = Field(default_factory=list)
    duplicates_removed: int = 0
    invalid_jobs_removed: int = 0
    original_count: int = 0
    final_count: int = 0
    processing_time_ms: int = 0


class BatchSummary(BaseModel):
    total_jobs_found: int = 0
    average_jobs_per_company: int = 0
    average_processing_time_ms: int = 0
    top_performing_companies: List[str] = Field(default_factory=list)
    problematic_websites: List[str] = Field(default_factory=list)


class BatchScrapingResult(BaseModel):
    run_id: str
    start_time: str
    end_time: str
    total_companies: int
    successful_companies: int = 0
    failed_companies: int = 0
    interrupted: bool = False
    results: List[CompanyScrapingResult] = Field(default_factory=list)
    summary: BatchSummary = Field(default_factory=BatchSummary)
    companies: List[CompanyInput] = Field(default_factory=list)

    @property
    def jobs(self) -> List[JobListing]:
        return [job for result in self.results for job in result.job_listings]

    def to_metadata(self) -> ScrapingMetadata:
        return ScrapingMetadata(
            run_id=self.run_id,
            run_timestamp=self.start_time,
            total_jobs=len(self.jobs),
            companies_processed=len(self.results),
            companies_successful=self.successful_companies,
            companies_failed=self.failed_companies,
        )
