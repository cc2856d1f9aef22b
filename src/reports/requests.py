from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Annotated, Any, Literal, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from config import config
from domain.ledger import AccountId, CarId, ReportPeriod, TagId, TravelType

MIN_REPORT_YEAR = 2000


class ValidationError(Exception):
    """Report request rejected before any data was fetched."""

    def __init__(self, message: str, *, errors: Mapping[str, str] | None = None) -> None:
        super().__init__(message)
        self.errors: dict[str, str] = dict(errors or {})


class ReportRequestContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    account_id: AccountId
    as_of: date | None = None

    def today(self) -> date:
        return self.as_of or datetime.now(timezone.utc).date()


def _add_years(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        # 29 February in a non-leap target year
        return day.replace(year=day.year + years, day=28)


def check_date_range(date_from: date, date_to: date) -> None:
    if date_from > date_to:
        raise ValueError("date_from must be before or equal to date_to")
    max_years = config().max_range_years
    if date_to > _add_years(date_from, max_years):
        msg = f"Date range cannot exceed {max_years} years"
        raise ValueError(msg)


class _ReportFilter(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    car_ids: list[CarId] = Field(default_factory=list)
    tag_ids: list[TagId] = Field(default_factory=list)


class ExpenseSummaryReportFilter(_ReportFilter):
    kind: Literal["expense_summary"] = "expense_summary"
    date_from: date | None = None
    date_to: date | None = None

    @model_validator(mode="after")
    def _validate_range(self) -> ExpenseSummaryReportFilter:
        if self.date_from is not None and self.date_to is not None:
            check_date_range(self.date_from, self.date_to)
        return self

    def resolve_period(self, context: ReportRequestContext, window_days: int) -> ReportPeriod:
        """Fill missing dates with a rolling window ending on the context date."""
        if self.date_from is not None and self.date_to is not None:
            return ReportPeriod(date_from=self.date_from, date_to=self.date_to)
        if self.date_to is not None:
            return ReportPeriod(date_from=self.date_to - timedelta(days=window_days - 1), date_to=self.date_to)

        date_to = context.today()
        if self.date_from is not None:
            if self.date_from > date_to:
                raise ValidationError(
                    "Invalid report request", errors={"date_from": "date_from is after the reporting date"}
                )
            try:
                check_date_range(self.date_from, date_to)
            except ValueError as err:
                raise ValidationError("Invalid report request", errors={"date_from": str(err)}) from err
            return ReportPeriod(date_from=self.date_from, date_to=date_to)
        return ReportPeriod(date_from=date_to - timedelta(days=window_days - 1), date_to=date_to)


class YearlyReportFilter(_ReportFilter):
    kind: Literal["yearly"] = "yearly"
    year: int

    @field_validator("year")
    @classmethod
    def _validate_year(cls, year: int) -> int:
        latest = datetime.now(timezone.utc).year + 1
        if not MIN_REPORT_YEAR <= year <= latest:
            msg = f"year must be between {MIN_REPORT_YEAR} and {latest}"
            raise ValueError(msg)
        return year

    @property
    def period(self) -> ReportPeriod:
        return ReportPeriod(date_from=date(self.year, 1, 1), date_to=date(self.year, 12, 31))


class ProfitabilityReportFilter(_ReportFilter):
    kind: Literal["profitability"] = "profitability"
    date_from: date
    date_to: date

    @model_validator(mode="after")
    def _validate_range(self) -> ProfitabilityReportFilter:
        check_date_range(self.date_from, self.date_to)
        return self

    @property
    def period(self) -> ReportPeriod:
        return ReportPeriod(date_from=self.date_from, date_to=self.date_to)


class TravelReportFilter(_ReportFilter):
    kind: Literal["travel"] = "travel"
    travel_types: list[TravelType] = Field(default_factory=list)
    date_from: date
    date_to: date

    @model_validator(mode="after")
    def _validate_range(self) -> TravelReportFilter:
        check_date_range(self.date_from, self.date_to)
        return self

    @property
    def period(self) -> ReportPeriod:
        return ReportPeriod(date_from=self.date_from, date_to=self.date_to)


ReportFilter = Annotated[
    Union[ExpenseSummaryReportFilter, YearlyReportFilter, ProfitabilityReportFilter, TravelReportFilter],
    Field(discriminator="kind"),
]

_report_filter_adapter: TypeAdapter[ReportFilter] = TypeAdapter(ReportFilter)


def _error_key(loc: tuple[Any, ...], kind: Any) -> str:
    parts = [str(part) for part in loc]
    if parts and parts[0] == kind:
        parts = parts[1:]
    return ".".join(parts) or "__root__"


def parse_report_request(raw: Mapping[str, Any] | BaseModel, *, kind: str | None = None) -> ReportFilter:
    """Validate a raw request into one of the report filter variants.

    ``kind`` pins the expected variant, which lets callers of a specific
    report omit the tag. Pydantic errors are flattened into
    ``ValidationError.errors`` keyed by the dotted field path.
    """
    if isinstance(raw, BaseModel):
        raw = raw.model_dump()
    data = dict(raw)
    if kind is not None:
        if data.setdefault("kind", kind) != kind:
            raise ValidationError("Invalid report request", errors={"kind": f"expected {kind!r}"})

    try:
        return _report_filter_adapter.validate_python(data)
    except PydanticValidationError as err:
        errors: dict[str, str] = {}
        for error in err.errors():
            errors.setdefault(_error_key(tuple(error["loc"]), data.get("kind")), error["msg"])
        raise ValidationError("Invalid report request", errors=errors) from err


__all__ = [
    "ExpenseSummaryReportFilter",
    "ProfitabilityReportFilter",
    "ReportFilter",
    "ReportRequestContext",
    "TravelReportFilter",
    "ValidationError",
    "YearlyReportFilter",
    "check_date_range",
    "parse_report_request",
]
