"""
Pydantic models for event data structures.

These models define the core data types used throughout the pipeline:
- SourceDescriptor: One scrape target from the source registry
- RawDocument: Fetched page content handed to extraction
- EventRecord: Canonical extracted event (the JSON artifact contract)
- ReferenceDate: The run's notion of "today"
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


MONTH_NAMES = [
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
]
MONTH_ABBRS = [name[:3] for name in MONTH_NAMES]

# Index matches date.weekday(): Monday is 0
WEEKDAY_NAMES = [
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
]
WEEKDAY_ABBRS = [name[:3] for name in WEEKDAY_NAMES]


class ExtractionMode(str, Enum):
    """How a source's page should be parsed."""

    STANDARD = "standard"  # CSS selectors only
    JSON_EMBEDDED = "json"  # embedded JSON first, selectors as fallback

    @classmethod
    def parse(cls, value: Optional[str]) -> "ExtractionMode":
        """Map a registry value to a mode, defaulting to STANDARD."""
        normalized = (value or "").strip().lower()
        for mode in cls:
            if mode.value == normalized:
                return mode
        return cls.STANDARD


class Selectors(BaseModel):
    """CSS selectors used by HTML extraction."""

    container: Optional[str] = None
    title: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    link: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value


class SourceDescriptor(BaseModel):
    """Identifies one scrape target and how to parse it."""

    name: str  # unique within a run, joins fetch results to sources
    region: str = ""
    url: str
    source_type: Optional[str] = None  # venue, aggregator, listing
    extraction_mode: ExtractionMode = ExtractionMode.STANDARD
    selectors: Selectors = Field(default_factory=Selectors)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "SourceDescriptor":
        """Build a descriptor from a source registry (CSV) row."""

        def cell(key: str) -> str:
            return (row.get(key) or "").strip()

        return cls(
            name=cell("source"),
            region=cell("region"),
            url=cell("url"),
            source_type=cell("type") or None,
            extraction_mode=ExtractionMode.parse(cell("extraction_type")),
            selectors=Selectors(
                container=cell("container_selector"),
                title=cell("title_selector"),
                date=cell("date_selector"),
                time=cell("time_selector"),
                link=cell("url_selector"),
            ),
        )


class FetchOutcome(BaseModel):
    """Result of fetching one source page."""

    source: str
    url: str
    success: bool
    file: Optional[str] = None  # HTML dump file name
    error: Optional[str] = None
    fetched_at: datetime = Field(default_factory=datetime.now)


class RawDocument(BaseModel):
    """Fetched page content associated with one source."""

    source: str
    url: str
    html: str


class EventRecord(BaseModel):
    """Canonical extracted event.

    Dates and times stay free text; classification works on the raw strings.
    """

    model_config = ConfigDict(frozen=True)

    title: str
    date: str = ""
    time: str = ""
    url: str = ""
    venue: str = ""
    region: str = ""
    source_url: str = ""
    is_today: bool = False

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("title must not be empty")
        return value

    @field_validator("date", "time", "url", "venue", "region", "source_url", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class ReferenceDate(BaseModel):
    """The run's "today", used by the date classifier."""

    model_config = ConfigDict(frozen=True)

    day: int = Field(ge=1, le=31)
    month: int = Field(ge=1, le=12)
    year: int
    weekday: int = Field(ge=0, le=6)  # 0 = Monday

    @classmethod
    def from_date(cls, value: date) -> "ReferenceDate":
        return cls(
            day=value.day,
            month=value.month,
            year=value.year,
            weekday=value.weekday(),
        )

    @classmethod
    def today(cls) -> "ReferenceDate":
        return cls.from_date(date.today())

    def as_date(self) -> date:
        return date(self.year, self.month, self.day)

    @property
    def month_name(self) -> str:
        return MONTH_NAMES[self.month - 1]

    @property
    def month_abbr(self) -> str:
        return MONTH_ABBRS[self.month - 1]

    @property
    def weekday_name(self) -> str:
        return WEEKDAY_NAMES[self.weekday]

    @property
    def weekday_abbr(self) -> str:
        return WEEKDAY_ABBRS[self.weekday]

    @property
    def label(self) -> str:
        """Human label such as 'Friday, May 2'."""
        return f"{self.weekday_name.title()}, {self.month_name.title()} {self.day}"


class ExtractionStats(BaseModel):
    """Statistics from extracting one source."""

    source: str
    count: int
    status: str  # success, empty, error
    strategy: Optional[str] = None
    duration_ms: Optional[int] = None
    error_message: Optional[str] = None


class AggregateResult(BaseModel):
    """Flat event list plus its region -> venue grouping."""

    flat: list[EventRecord]
    grouped: dict[str, dict[str, list[EventRecord]]]

    @property
    def total(self) -> int:
        return len(self.flat)


class CleanupRequest(BaseModel):
    """Prompt pair sent to the normalization model."""

    model: str
    system_prompt: str
    user_prompt: str
    reference_label: str
