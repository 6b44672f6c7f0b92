"""Deal snapshot records consumed by the pipeline analytics engine.

The persistence layer eager-loads each deal with its stage, follow-ups and
proposals and hands the engine these frozen records.  A deal's ``stage`` is a
denormalised snapshot taken when the deal was loaded, never a live reference.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

# Deal statuses
STATUS_OPEN = "open"
STATUS_ON_HOLD = "on_hold"
STATUS_WON = "won"
STATUS_LOST = "lost"

DEAL_STATUSES = (STATUS_OPEN, STATUS_ON_HOLD, STATUS_WON, STATUS_LOST)
ACTIVE_STATUSES = frozenset({STATUS_OPEN, STATUS_ON_HOLD})
CLOSED_STATUSES = frozenset({STATUS_WON, STATUS_LOST})

# Stage categories
STAGE_CATEGORIES = ("open", "won", "lost")

FOLLOW_UP_STATUSES = ("scheduled", "completed", "cancelled")
PROPOSAL_STATUSES = ("draft", "sent", "accepted", "declined")

DEFAULT_PIPELINE_STAGES = [
    {"name": "Lead In", "win_probability": 10, "status_category": "open"},
    {"name": "Discovery Scheduled", "win_probability": 25, "status_category": "open"},
    {"name": "Proposal Sent", "win_probability": 45, "status_category": "open"},
    {"name": "Negotiation", "win_probability": 65, "status_category": "open"},
    {"name": "Closed Won", "win_probability": 100, "status_category": "won"},
    {"name": "Closed Lost", "win_probability": 0, "status_category": "lost"},
]


@dataclass(frozen=True)
class Stage:
    """A pipeline stage as it looked when the deal was loaded."""

    id: str | None
    name: str
    win_probability: float = 0.0  # 0-100
    status_category: str = "open"  # open / won / lost
    position: int = 0


@dataclass(frozen=True)
class FollowUp:
    """A scheduled touchpoint on a deal."""

    id: str | None
    due_at: datetime | None
    status: str = "scheduled"


@dataclass(frozen=True)
class Proposal:
    """A proposal sent (or drafted) against a deal."""

    id: str | None
    status: str = "draft"
    accepted_at: datetime | None = None


@dataclass(frozen=True)
class Deal:
    """Read-only snapshot of a single deal."""

    id: str | None
    status: str = STATUS_OPEN
    pipeline_value: float = 0.0
    win_probability: float | None = None  # 0-100, falls back to stage
    stage_id: str | None = None
    stage: Stage | None = None
    title: str | None = None
    client_name: str | None = None
    industry: str | None = None
    retainer_size: str | None = None
    tags: tuple[str, ...] = ()
    created_at: datetime | None = None
    updated_at: datetime | None = None
    closed_at: datetime | None = None
    last_contact_at: datetime | None = None
    next_follow_up_at: datetime | None = None
    expected_close_date: datetime | None = None
    follow_ups: tuple[FollowUp, ...] = field(default_factory=tuple)
    proposals: tuple[Proposal, ...] = field(default_factory=tuple)

    @property
    def probability(self) -> float:
        """Effective win probability: deal override, then stage, then 0."""
        if self.win_probability is not None:
            return self.win_probability
        if self.stage is not None:
            return self.stage.win_probability
        return 0.0

    @property
    def stage_name(self) -> str | None:
        return self.stage.name if self.stage is not None else None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def close_timestamp(self) -> datetime | None:
        """Best available timestamp for the won/lost transition."""
        return self.closed_at or self.updated_at


def resolve_status_from_stage(stage: Stage | None, fallback_status: str = STATUS_OPEN) -> str:
    """Map a stage's category onto a deal status."""
    if stage is None:
        return fallback_status
    if stage.status_category == "won":
        return STATUS_WON
    if stage.status_category == "lost":
        return STATUS_LOST
    return fallback_status


def deal_digest(deal: Deal) -> dict:
    """Compact, JSON-ready view of a deal for risk lists and UI cards."""
    return {
        "id": deal.id,
        "title": deal.title,
        "client_name": deal.client_name,
        "stage": deal.stage_name,
        "value": deal.pipeline_value,
        "win_probability": deal.probability,
        "status": deal.status,
    }
