"""
Feed API endpoints for the displayed anomaly list.

Provides:
    GET  /api/anomalies - Filtered working set of the active mode
    GET  /api/criteria  - Saved filter selection
    PUT  /api/criteria  - Replace the saved filter selection
    POST /api/select    - Pick a record for the detail view
    PUT  /api/external  - Supply the externally-supplied collection
    POST /api/refresh   - Re-run the active mode's fetch

Note:
    Filtering happens in the controller's filter engine; scores, tiers and
    version buckets are derived from the records, never stored.
"""

from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from flightwatch.backend import BackendNormalizer
from flightwatch.filtering import confidence_score, score_tier
from flightwatch.interfaces import MalformedResponseError
from flightwatch.models import AnomalyRecord, FilterCriteria, Mode

from services.dashboard.app import get_controller

logger = structlog.get_logger(__name__)

router = APIRouter()


class AnomalyItem(BaseModel):
    """One displayed anomaly."""

    flight_id: str
    timestamp: int
    callsign: Optional[str] = None
    title: str
    is_anomaly: bool = False
    confidence_score: float = 0.0
    tier: str = "low"
    version: str
    triggers: List[str] = Field(default_factory=list)
    rule_names: List[str] = Field(default_factory=list)
    severity_cnn: float = 0.0
    severity_dense: float = 0.0
    user_label: Optional[int] = None
    feedback_comments: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "flight_id": "3b1f2a",
                "timestamp": 1753100000,
                "callsign": "ELY027",
                "title": "ELY027",
                "is_anomaly": True,
                "confidence_score": 91.0,
                "tier": "critical",
                "version": "v3",
                "triggers": ["Rules", "XGBoost"],
                "rule_names": ["Emergency squawk"],
            }
        }


class AnomalyListResponse(BaseModel):
    """Response model for the anomaly list endpoint."""

    mode: str
    anomalies: List[AnomalyItem]
    count: int
    total_count: int
    hidden_count: int
    is_loading: bool
    last_error: Optional[str] = None


class SelectRequest(BaseModel):
    """Request model for record selection."""

    flight_id: str
    timestamp: int


class ExternalRecordsRequest(BaseModel):
    """Request model for the externally-supplied collection."""

    records: List[Dict[str, Any]] = Field(default_factory=list)


class ExternalRecordsResponse(BaseModel):
    """Response model for the externally-supplied collection."""

    accepted: int
    skipped: int
    mirrored: bool


class RefreshResponse(BaseModel):
    """Response model for refresh."""

    mode: str
    dispatched: bool


def to_item(record: AnomalyRecord, version: str) -> AnomalyItem:
    """
    Convert a record to its API representation.

    Args:
        record: Record to convert.
        version: Version bucket of the record.

    Returns:
        AnomalyItem: API model.
    """
    view = record.report
    score = confidence_score(record)

    return AnomalyItem(
        flight_id=record.flight_id,
        timestamp=record.timestamp,
        callsign=record.callsign,
        title=record.display_title,
        is_anomaly=record.is_anomaly,
        confidence_score=score,
        tier=score_tier(score),
        version=version,
        triggers=view.triggers,
        rule_names=view.rule_names,
        severity_cnn=record.severity_cnn,
        severity_dense=record.severity_dense,
        user_label=int(record.user_label) if record.user_label is not None else None,
        feedback_comments=record.feedback_comments,
    )


@router.get(
    "/anomalies",
    response_model=AnomalyListResponse,
    summary="Get displayed anomalies",
    description=(
        "Filters the active mode's working set by the saved criteria. Query "
        "parameters override the saved criteria for this request only."
    ),
)
async def get_anomalies(
    q: Optional[str] = Query(default=None, description="Text matched against flight id, callsign and triggers"),
    min_score: Optional[int] = Query(default=None, ge=0, le=100, description="Minimum confidence score"),
    trigger: Optional[str] = Query(default=None, description="Layer name, 'All' or 'Combination'"),
    layers: Optional[List[str]] = Query(default=None, description="Required layers in combination mode"),
    version: Optional[str] = Query(default=None, description="Version bucket or 'All'"),
    show_normal: Optional[bool] = Query(default=None, description="Reveal records labelled normal"),
) -> AnomalyListResponse:
    """
    Get the displayed anomaly list. Never changes the saved criteria.

    Returns:
        AnomalyListResponse: Filtered records with controller state.
    """
    controller = get_controller()

    overrides = {
        "query": q,
        "min_score": min_score,
        "trigger_layer": trigger,
        "required_layers": frozenset(layers) if layers is not None else None,
        "version": version,
        "show_normal": show_normal,
    }
    criteria = FilterCriteria(
        **{
            **controller.criteria.model_dump(),
            **{key: value for key, value in overrides.items() if value is not None},
        }
    )
    view = controller.view(criteria)

    table = controller.version_table
    anomalies = [to_item(record, table.classify(record.timestamp)) for record in view.records]

    return AnomalyListResponse(
        mode=view.mode.value,
        anomalies=anomalies,
        count=len(anomalies),
        total_count=view.total_count,
        hidden_count=view.hidden_count,
        is_loading=view.is_loading,
        last_error=view.last_error,
    )


@router.get(
    "/criteria",
    response_model=FilterCriteria,
    summary="Get the saved filter selection",
    description="Returns the criteria GET /api/anomalies applies when no query parameters are given.",
)
async def get_criteria() -> FilterCriteria:
    """Return the saved filter selection."""
    return get_controller().criteria


@router.put(
    "/criteria",
    response_model=FilterCriteria,
    summary="Replace the saved filter selection",
    description="Stores the operator's filter selection on the controller.",
)
async def put_criteria(criteria: FilterCriteria) -> FilterCriteria:
    """
    Replace the saved filter selection.

    Args:
        criteria: New filter selection. Omitted fields take their defaults.

    Returns:
        FilterCriteria: The stored selection.
    """
    controller = get_controller()
    controller.set_criteria(criteria)

    logger.info(
        "criteria_updated",
        query=criteria.query,
        min_score=criteria.min_score,
        trigger_layer=criteria.trigger_layer,
        version=criteria.version,
    )

    return controller.criteria


@router.post(
    "/select",
    response_model=AnomalyItem,
    summary="Select a record",
    description="Picks a record of the working set for the detail view.",
)
async def select_record(request: SelectRequest) -> AnomalyItem:
    """
    Select a record by its merge key.

    Raises:
        HTTPException: 404 if the record is not in the working set.
    """
    controller = get_controller()
    key = (request.flight_id, request.timestamp)

    for record in controller.store.records:
        if record.key == key:
            controller.select_record(record)
            return to_item(record, controller.version_table.classify(record.timestamp))

    raise HTTPException(
        status_code=404,
        detail=f"Record {request.flight_id}@{request.timestamp} not in working set",
    )


@router.put(
    "/external",
    response_model=ExternalRecordsResponse,
    summary="Supply external records",
    description="Replaces the collection mirrored in externally-supplied mode.",
)
async def put_external_records(request: ExternalRecordsRequest) -> ExternalRecordsResponse:
    """
    Supply the externally-supplied collection.

    Items missing a flight id or timestamp are skipped.
    """
    controller = get_controller()

    records: List[AnomalyRecord] = []
    for index, raw in enumerate(request.records):
        try:
            records.append(BackendNormalizer.normalize_record(raw))
        except MalformedResponseError as e:
            logger.warning("external_record_skipped", index=index, error=str(e))

    controller.set_external_records(records)

    return ExternalRecordsResponse(
        accepted=len(records),
        skipped=len(request.records) - len(records),
        mirrored=controller.mode == Mode.EXTERNAL,
    )


@router.post(
    "/refresh",
    response_model=RefreshResponse,
    summary="Refresh the active mode",
    description="Re-runs the active mode's fetch from scratch.",
)
async def refresh() -> RefreshResponse:
    """Re-run the active mode's strategy."""
    controller = get_controller()
    task = controller.refresh()
    return RefreshResponse(mode=controller.mode.value, dispatched=task is not None)
