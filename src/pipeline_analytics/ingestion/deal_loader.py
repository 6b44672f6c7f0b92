"""Deal loader — normalises raw CRM records into engine snapshots.

The web layer hands us whatever the persistence layer produced: plain dicts
with camelCase wire keys, snake_case keys, or a mix.  Everything is converted
to the frozen records in ``pipeline_analytics.models`` before the engine runs.
Snapshots that are already ``Deal`` instances go through the same rules, so a
naive timestamp or an out-of-range number on a DTO is treated exactly like
the same value in a dict.
Hard failures (raise ValidationError):
    - ``deals`` is not a list/tuple, or an element is not a mapping/Deal
    - a timestamp string that is not ISO-8601

Soft anomalies (logged, normalised to a safe default):
    - non-numeric or negative pipeline value -> 0
    - probability outside 0-100 -> clamped
    - unknown deal status -> stage category, then ``open``
    - missing stage -> None
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import asdict
from datetime import date, datetime, timezone
from typing import Any

from pipeline_analytics.errors import ValidationError
from pipeline_analytics.models import (
    DEAL_STATUSES,
    Deal,
    FollowUp,
    Proposal,
    Stage,
    resolve_status_from_stage,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _safe_float(val) -> float | None:
    """Convert a value to float safely, returning None on failure."""
    if val is None or isinstance(val, bool):
        return None
    try:
        result = float(val)
    except (TypeError, ValueError):
        return None
    if result != result or result in (float("inf"), float("-inf")):
        return None
    return result


def _get(raw: Mapping, *keys: str, default: Any = None) -> Any:
    """Return the first present key (wire camelCase or snake_case)."""
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return default


def _opt_str(val) -> str | None:
    if val is None:
        return None
    text = str(val).strip()
    return text or None


def parse_timestamp(value, field: str = "timestamp") -> datetime | None:
    """Parse an ISO-8601 timestamp into an aware UTC-based datetime.

    ``None`` and empty strings mean "not set".  Naive datetimes are treated
    as UTC.  Any other unparsable value raises ValidationError.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be an ISO-8601 string, got {type(value).__name__}", field)

    text = value.strip()
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"{field} is not a valid ISO-8601 timestamp: {value!r}", field) from None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _clamp_probability(val, deal_id) -> float | None:
    prob = _safe_float(val)
    if prob is None:
        if val is not None:
            logger.warning("Deal %s: non-numeric win probability %r ignored", deal_id, val)
        return None
    if prob < 0 or prob > 100:
        logger.warning("Deal %s: win probability %s clamped to 0-100", deal_id, prob)
        prob = max(0.0, min(prob, 100.0))
    return prob


# ---------------------------------------------------------------------------
# Nested records
# ---------------------------------------------------------------------------


def load_stage(raw) -> Stage | None:
    """Build a Stage snapshot from a mapping or an existing Stage."""
    if raw is None:
        return None
    if isinstance(raw, Stage):
        raw = asdict(raw)
    if not isinstance(raw, Mapping):
        logger.warning("Ignoring stage of unexpected type %s", type(raw).__name__)
        return None

    prob = _safe_float(_get(raw, "winProbability", "win_probability"))
    category = str(_get(raw, "statusCategory", "status_category", default="open")).lower()
    if category not in ("open", "won", "lost"):
        category = "open"
    position = _safe_float(_get(raw, "position"))
    return Stage(
        id=_opt_str(_get(raw, "id")),
        name=str(_get(raw, "name", default="Pipeline")),
        win_probability=max(0.0, min(prob, 100.0)) if prob is not None else 0.0,
        status_category=category,
        position=int(position) if position is not None else 0,
    )


def load_stages(raw) -> list[Stage]:
    """Build a stage list for the kanban view, ordered by position."""
    if raw is None:
        return []
    if not isinstance(raw, (list, tuple)):
        raise ValidationError("stages must be a list", "stages")
    stages = [s for s in (load_stage(item) for item in raw) if s is not None]
    return sorted(stages, key=lambda s: s.position)


def _load_follow_ups(raw, deal_id) -> tuple[FollowUp, ...]:
    if not isinstance(raw, (list, tuple)):
        return ()
    follow_ups = []
    for i, item in enumerate(raw):
        if isinstance(item, FollowUp):
            item = asdict(item)
        if not isinstance(item, Mapping):
            continue
        follow_ups.append(FollowUp(
            id=_opt_str(_get(item, "id")),
            due_at=parse_timestamp(_get(item, "dueAt", "due_at"), f"deals[{deal_id}].followUps[{i}].dueAt"),
            status=str(_get(item, "status", default="scheduled")).lower(),
        ))
    return tuple(follow_ups)


def _load_proposals(raw, deal_id) -> tuple[Proposal, ...]:
    if not isinstance(raw, (list, tuple)):
        return ()
    proposals = []
    for i, item in enumerate(raw):
        if isinstance(item, Proposal):
            item = asdict(item)
        if not isinstance(item, Mapping):
            continue
        proposals.append(Proposal(
            id=_opt_str(_get(item, "id")),
            status=str(_get(item, "status", default="draft")).lower(),
            accepted_at=parse_timestamp(
                _get(item, "acceptedAt", "accepted_at"),
                f"deals[{deal_id}].proposals[{i}].acceptedAt",
            ),
        ))
    return tuple(proposals)


# ---------------------------------------------------------------------------
# Deals
# ---------------------------------------------------------------------------


def load_deal(raw) -> Deal:
    """Normalise one raw deal record (or an existing Deal) into a Deal snapshot."""
    if isinstance(raw, Deal):
        raw = asdict(raw)
    if not isinstance(raw, Mapping):
        raise ValidationError(
            f"each deal must be a mapping or Deal, got {type(raw).__name__}", "deals",
        )

    deal_id = _opt_str(_get(raw, "id"))
    stage = load_stage(_get(raw, "stage"))
    if stage is None:
        logger.debug("Deal %s has no stage snapshot", deal_id)

    raw_value = _get(raw, "pipelineValue", "pipeline_value")
    value = _safe_float(raw_value)
    if value is None or value < 0:
        if raw_value is not None:
            logger.warning("Deal %s: pipeline value %r normalised to 0", deal_id, raw_value)
        value = 0.0

    status = str(_get(raw, "status", default="")).lower()
    if status not in DEAL_STATUSES:
        if status:
            logger.warning("Deal %s: unknown status %r, deriving from stage", deal_id, status)
        status = resolve_status_from_stage(stage)

    tags = _get(raw, "tags", default=())
    if not isinstance(tags, (list, tuple)):
        tags = ()

    def ts(*keys: str) -> datetime | None:
        return parse_timestamp(_get(raw, *keys), f"deals[{deal_id}].{keys[0]}")

    return Deal(
        id=deal_id,
        status=status,
        pipeline_value=value,
        win_probability=_clamp_probability(_get(raw, "winProbability", "win_probability"), deal_id),
        stage_id=_opt_str(_get(raw, "stageId", "stage_id")) or (stage.id if stage else None),
        stage=stage,
        title=_opt_str(_get(raw, "title")),
        client_name=_opt_str(_get(raw, "clientName", "client_name")),
        industry=_opt_str(_get(raw, "industry")),
        retainer_size=_opt_str(_get(raw, "retainerSize", "retainer_size")),
        tags=tuple(str(t) for t in tags if t),
        created_at=ts("createdAt", "created_at"),
        updated_at=ts("updatedAt", "updated_at"),
        closed_at=ts("closedAt", "closed_at"),
        last_contact_at=ts("lastContactAt", "last_contact_at"),
        next_follow_up_at=ts("nextFollowUpAt", "next_follow_up_at"),
        expected_close_date=ts("expectedCloseDate", "expected_close_date"),
        follow_ups=_load_follow_ups(_get(raw, "followUps", "follow_ups"), deal_id),
        proposals=_load_proposals(_get(raw, "proposals"), deal_id),
    )


def load_deals(raw) -> list[Deal]:
    """Normalise a collection of raw deals.

    Raises:
        ValidationError: if ``raw`` is not a list/tuple or any element is
            structurally invalid.
    """
    if not isinstance(raw, (list, tuple)):
        raise ValidationError(f"deals must be a list, got {type(raw).__name__}", "deals")
    return [load_deal(item) for item in raw]
