from datetime import date
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

# percent_complete value reported for a failed run
PROGRESS_FAILED = -1


class Posting(BaseModel):
    """
    A single job posting scraped from a search-results page.
    The description is filled in later by the detail fetcher, and the owning
    user is assigned only when the posting is saved.
    """

    id: int | None = None
    title: str
    company: str
    location: str = ""
    description: str | None = None
    url: str = ""
    date_posted: date | None = None
    date_scraped: date = Field(default_factory=date.today)
    experience_level: str | None = None
    experience_level_source: Literal["facet", "inferred"] = "inferred"
    job_type: str | None = None
    user_id: str | None = None

    def apply_inferred_experience_level(self, level: str | None) -> None:
        """Set a text-inferred level unless the level came from the searched facet."""
        if self.experience_level_source == "facet":
            return
        self.experience_level = level


def _split_words(value: object) -> object:
    """Accept either a list or a comma-separated string for word-list fields."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    if isinstance(value, list | tuple):
        return [str(v).strip() for v in value if str(v).strip()]
    return value


class ScrapeStats(BaseModel):
    """Counters accumulated over a single scrape run."""

    pages_scraped: int = 0
    total_found: int = 0
    after_filtering: int = 0
    duplicates_skipped: int = 0
    elapsed_ms: int = 0

    def record_duplicates(self, count: int) -> None:
        if count < 0:
            raise ValueError(f"duplicate count cannot be negative, got {count}")
        self.duplicates_skipped += count


class ScrapeConfig(BaseModel):
    """
    Parameters of one scrape request.
    `stats` is reset and filled in by the scraper during the run.
    """

    keywords: str
    location: str
    pages_requested: int = Field(default=1, ge=1)
    experience_level: str | None = None
    experience_levels_include: list[str] = Field(default_factory=list)
    job_type: str | None = None
    remote_only: bool = False
    days_old: int = 7
    title_include_words: list[str] = Field(default_factory=list)
    title_exclude_words: list[str] = Field(default_factory=list)
    company_exclude_words: list[str] = Field(default_factory=list)
    description_exclude_words: list[str] = Field(default_factory=list)
    experience_level_exclude: list[str] = Field(default_factory=list)
    fetch_descriptions: bool = True
    user_id: str | None = None
    stats: ScrapeStats = Field(default_factory=ScrapeStats)

    @field_validator("keywords", "location")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("keywords and location are required")
        return v.strip()

    @field_validator(
        "experience_levels_include",
        "title_include_words",
        "title_exclude_words",
        "company_exclude_words",
        "description_exclude_words",
        "experience_level_exclude",
        mode="before",
    )
    @classmethod
    def split_words(cls, v: object) -> object:
        return _split_words(v)

    @field_validator("experience_level", "job_type", mode="before")
    @classmethod
    def blank_to_none(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def clamp_pages(self, max_pages: int) -> int:
        """Cap pages_requested at max_pages and return the effective value."""
        self.pages_requested = max(1, min(self.pages_requested, max_pages))
        return self.pages_requested


class ProgressState(BaseModel):
    """
    Snapshot of a run's progress. Frozen: every write replaces the whole
    snapshot so readers never observe a half-updated state.
    percent_complete == -1 marks a failed run.
    """

    model_config = ConfigDict(frozen=True)

    percent_complete: int = 0
    current_page: int = 0
    total_pages: int = 0
    status: str = ""
    experience_level_index: int = 0
    total_experience_levels: int = 0
    current_experience_level: str | None = None
    found: bool = True

    @classmethod
    def not_found(cls) -> "ProgressState":
        return cls(status="Not found", found=False)

    @property
    def is_failed(self) -> bool:
        return self.percent_complete == PROGRESS_FAILED

    @property
    def is_finished(self) -> bool:
        return self.is_failed or self.percent_complete >= 100


class ScrapeState(StrEnum):
    INITIALIZING = "initializing"
    CONNECTING = "connecting"
    SEARCHING = "searching"
    FILTERING = "filtering"
    SAVING = "saving"
    COMPLETED = "completed"
    FAILED = "failed"


class ScrapeResult(BaseModel):
    """What a finished run hands back to its caller."""

    postings: list[Posting] = Field(default_factory=list)
    saved: list[Posting] = Field(default_factory=list)
    stats: ScrapeStats = Field(default_factory=ScrapeStats)
    state: ScrapeState = ScrapeState.COMPLETED
    error: str | None = None
