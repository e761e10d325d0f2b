"""Pydantic schemas for overuse batch runs (API + CLI output)."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from src.clients.reconciliation.schemas import Property, ReconciliationResult


class RunStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    STOPPED_EARLY = "stopped_early"
    FAILED = "failed"


# --- Single property result ---
class PropertyOutcome(BaseModel):
    """Result of processing one property: a success payload or an error."""

    property: str
    success: bool
    electricity_bills: int = 0
    water_bills: int = 0
    electricity_cost: float = 0.0
    water_cost: float = 0.0
    total_cost: float = 0.0
    allowance: float = 0.0
    overuse_amount: float = 0.0
    rooms: Optional[int] = None
    unit_code: Optional[str] = None
    used_fallback: bool = False
    warnings: list[str] = Field(default_factory=list)
    attempts: int = 1
    error: Optional[str] = None

    @classmethod
    def from_result(cls, prop: Property, result: ReconciliationResult, attempts: int = 1) -> "PropertyOutcome":
        return cls(
            property=prop.name,
            success=True,
            electricity_bills=len(result.selected_electricity),
            water_bills=len(result.selected_water),
            electricity_cost=float(result.electricity_cost),
            water_cost=float(result.water_cost),
            total_cost=float(result.total_cost),
            allowance=float(result.allowance),
            overuse_amount=float(result.overuse_amount),
            rooms=prop.room_count,
            unit_code=prop.unit_code,
            used_fallback=result.used_fallback,
            warnings=list(result.warnings),
            attempts=attempts,
        )

    @classmethod
    def failure(cls, prop: Property, error: str, attempts: int = 1) -> "PropertyOutcome":
        return cls(
            property=prop.name,
            success=False,
            rooms=prop.room_count,
            unit_code=prop.unit_code,
            attempts=attempts,
            error=error,
        )


class LogLine(BaseModel):
    level: str = "info"
    message: str


# --- Run summary ---
class RunSummary(BaseModel):
    """Outcome of a whole run; always returned, never raised."""

    run_id: str
    status: RunStatus = RunStatus.RUNNING
    period: str
    started_at: datetime = Field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None
    total: int = 0
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    outcomes: list[PropertyOutcome] = Field(default_factory=list)
    logs: list[LogLine] = Field(default_factory=list)
    error: Optional[str] = None


# --- API ---
class RunRequest(BaseModel):
    """Start a run over a property list (spreadsheet export rows)."""

    properties: list[Property] = Field(..., min_length=1)
    period: Optional[str] = Field(None, description="Period label, e.g. Jul-Aug; default: previous + current month")
    limit: Optional[int] = Field(None, ge=1, description="Process at most this many properties")


class RunAccepted(BaseModel):
    run_id: str
    status: RunStatus
    period: str
    total: int


class RunStatusResponse(BaseModel):
    run_id: str
    status: RunStatus
    summary: Optional[RunSummary] = None


class CancelResponse(BaseModel):
    cancelled: list[str] = Field(default_factory=list, description="Run ids that were asked to stop")
    message: str = ""


class SlotsResetResponse(BaseModel):
    active_slots_before: int
    active_slots: int


class EnvFlags(BaseModel):
    """Which integrations are configured (never the secret values)."""

    dashboard_credentials: bool
    browser_ws_url: bool
    force_local_chromium: bool
    llm_fallback: bool
    llm_provider: str
    session_ceiling: int
    batch_size: int
    extra: dict[str, Any] = Field(default_factory=dict)
