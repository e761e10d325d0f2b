"""Pydantic schemas for utility bill reconciliation."""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from src.overuse.utils.amounts import ZERO, parse_amount
from src.overuse.utils.date_utils import parse_date

MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


class ServiceType(str, Enum):
    """Utility service of a bill row."""
    ELECTRICITY = "Electricity"
    WATER = "Water"
    GAS = "Gas"
    OTHER = "Other"


# Keyword -> service, first match wins (dashboard labels are English or Spanish)
SERVICE_KEYWORDS: tuple[tuple[str, ServiceType], ...] = (
    ("electric", ServiceType.ELECTRICITY),
    ("luz", ServiceType.ELECTRICITY),
    ("endesa", ServiceType.ELECTRICITY),
    ("water", ServiceType.WATER),
    ("agua", ServiceType.WATER),
    ("gas", ServiceType.GAS),
)


def classify_service(label: Any) -> ServiceType:
    """Tag a raw service label by keyword."""
    text = str(label or "").lower()
    for keyword, service in SERVICE_KEYWORDS:
        if keyword in text:
            return service
    return ServiceType.OTHER


class Cohort(str, Enum):
    """Which months a property's bimonthly water bills end in."""
    EVEN = "EVEN"
    ODD = "ODD"


# --- Extracted bill (typed at the extraction boundary) ---
class BillRecord(BaseModel):
    """One utility invoice row from the billing dashboard."""

    service: ServiceType
    initial_date: Optional[date] = None
    final_date: Optional[date] = None
    total_amount: Decimal = ZERO
    source_columns: dict[str, str] = Field(default_factory=dict, description="Raw cells keyed by column name")

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_raw_row(cls, row: dict[str, Any]) -> "BillRecord":
        """Build a record from a raw dashboard row ({"Service": ..., "Initial date": ..., ...})."""
        cells = {str(k): "" if v is None else str(v).strip() for k, v in (row or {}).items()}
        lowered = {k.lower().strip(): v for k, v in cells.items()}
        return cls(
            service=classify_service(lowered.get("service", "")),
            initial_date=parse_date(lowered.get("initial date")),
            final_date=parse_date(lowered.get("final date")),
            total_amount=parse_amount(lowered.get("total")),
            source_columns=cells,
        )

    @property
    def identity(self) -> tuple:
        """Key for exact duplicates (same service, dates and amount)."""
        return (self.service, self.initial_date, self.final_date, self.total_amount)

    def describe(self) -> str:
        start = self.initial_date.isoformat() if self.initial_date else "?"
        end = self.final_date.isoformat() if self.final_date else "?"
        return f"{self.service.value} {start}..{end} {self.total_amount}"


# --- Cycle under review ---
class Period(BaseModel):
    """Two consecutive months under review (e.g. Jul-Aug, Dec-Jan)."""

    first_month: int = Field(..., ge=1, le=12)
    second_month: int = Field(..., ge=1, le=12)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _consecutive(self) -> "Period":
        if self.second_month != self.first_month % 12 + 1:
            raise ValueError(
                f"second_month must follow first_month (got {self.first_month}, {self.second_month})"
            )
        return self

    @property
    def months(self) -> list[int]:
        return [self.first_month, self.second_month]

    @property
    def label(self) -> str:
        return f"{MONTH_ABBR[self.first_month - 1]}-{MONTH_ABBR[self.second_month - 1]}"


# --- Property (rental unit) ---
class Property(BaseModel):
    """A rental unit. Accepts the spreadsheet export keys (`rooms`, `unitCode`)."""

    name: str = Field(..., min_length=1)
    room_count: Optional[int] = Field(None, validation_alias=AliasChoices("room_count", "rooms", "roomCount"))
    unit_code: Optional[str] = Field(None, validation_alias=AliasChoices("unit_code", "unitCode"))

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("room_count", mode="before")
    @classmethod
    def _parse_rooms(cls, v: Any) -> Optional[int]:
        if v is None or isinstance(v, bool):
            return None
        if isinstance(v, int):
            return v
        try:
            return int(str(v).strip())
        except (TypeError, ValueError):
            return None

    @field_validator("unit_code", mode="before")
    @classmethod
    def _blank_unit_code(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        s = str(v).strip()
        return s or None


# --- Fallback selector output ---
class FallbackSelection(BaseModel):
    """Bills chosen by the fallback selector, with its explanation."""

    electricity: list[BillRecord] = Field(default_factory=list)
    water: list[BillRecord] = Field(default_factory=list)
    explanation: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.electricity and not self.water


# --- Engine output ---
class ReconciliationResult(BaseModel):
    """Selected bills, costs and warnings for one property in one period."""

    selected_electricity: list[BillRecord] = Field(default_factory=list)
    selected_water: list[BillRecord] = Field(default_factory=list, max_length=1)
    warnings: list[str] = Field(default_factory=list)
    used_fallback: bool = False
    fallback_explanation: Optional[str] = None
    electricity_cost: Decimal = ZERO
    water_cost: Decimal = ZERO
    total_cost: Decimal = ZERO
    allowance: Decimal = ZERO
    overuse_amount: Decimal = Field(ZERO, ge=0)

    model_config = ConfigDict(frozen=True)

    @property
    def bills_found(self) -> int:
        return len(self.selected_electricity) + len(self.selected_water)
