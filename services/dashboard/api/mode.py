"""
Mode API endpoints for the console's data source selection.

Provides:
    GET    /api/state       - Active mode, date, rule and loading state
    PUT    /api/mode        - Switch mode
    PUT    /api/date        - Select a calendar day
    POST   /api/date/shift  - Move the selected day
    PUT    /api/rule        - Select a rule (rule-detail mode)
    DELETE /api/rule        - Return to the rule catalog
    GET    /api/rules       - Rule catalog

Note:
    Every transition is applied synchronously by the controller before the
    response is sent; the fetch it dispatches completes in the background.
    Poll GET /api/state until ``is_loading`` is false.
"""

from datetime import date
from typing import List, Optional

import structlog
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from flightwatch.feed import FeedController
from flightwatch.models import Mode

from services.dashboard.app import get_controller

logger = structlog.get_logger(__name__)

router = APIRouter()


class RuleModel(BaseModel):
    """Model for one rule catalog entry."""

    id: int
    name: str
    description: str = ""


class StateResponse(BaseModel):
    """Response model for the controller state."""

    mode: Mode
    selected_date: date
    selected_rule: Optional[int] = None
    shows_catalog: bool = False
    is_loading: bool = False
    polling: bool = False
    record_count: int = 0
    last_error: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "mode": "realtime",
                "selected_date": "2025-07-21",
                "selected_rule": None,
                "shows_catalog": False,
                "is_loading": False,
                "polling": True,
                "record_count": 42,
                "last_error": None,
            }
        }


class ModeRequest(BaseModel):
    """Request model for mode switching."""

    mode: Mode


class DateRequest(BaseModel):
    """Request model for date selection."""

    date: date


class DateShiftRequest(BaseModel):
    """Request model for moving the selected date."""

    days: int = Field(..., ge=-366, le=366)


class RuleRequest(BaseModel):
    """Request model for rule selection."""

    rule_id: int


class RulesResponse(BaseModel):
    """Response model for the rule catalog."""

    rules: List[RuleModel]
    count: int


def build_state(controller: FeedController) -> StateResponse:
    """
    Snapshot the controller state.

    Args:
        controller: The controller.

    Returns:
        StateResponse: Current state.
    """
    poller = controller.poller
    return StateResponse(
        mode=controller.mode,
        selected_date=controller.selected_date,
        selected_rule=controller.selected_rule,
        shows_catalog=controller.mode == Mode.RULE_DETAIL and controller.selected_rule is None,
        is_loading=controller.is_loading,
        polling=poller is not None and poller.is_running,
        record_count=len(controller.store),
        last_error=controller.last_error,
    )


@router.get(
    "/state",
    response_model=StateResponse,
    summary="Get controller state",
    description="Active mode, selected date and rule, and loading state.",
)
async def get_state() -> StateResponse:
    """Get the controller state."""
    return build_state(get_controller())


@router.put(
    "/mode",
    response_model=StateResponse,
    summary="Switch mode",
    description="Clears the working set and starts the new mode's fetch.",
)
async def put_mode(request: ModeRequest) -> StateResponse:
    """Switch the active mode."""
    controller = get_controller()
    controller.set_mode(request.mode)
    return build_state(controller)


@router.put(
    "/date",
    response_model=StateResponse,
    summary="Select a day",
    description="Re-fetches when a date-scoped mode is active.",
)
async def put_date(request: DateRequest) -> StateResponse:
    """Select a calendar day."""
    controller = get_controller()
    controller.set_date(request.date)
    return build_state(controller)


@router.post(
    "/date/shift",
    response_model=StateResponse,
    summary="Move the selected day",
    description="Moves the selected day forward (positive) or back (negative).",
)
async def shift_date(request: DateShiftRequest) -> StateResponse:
    """Move the selected day."""
    controller = get_controller()
    controller.shift_date(request.days)
    return build_state(controller)


@router.put(
    "/rule",
    response_model=StateResponse,
    summary="Select a rule",
    description="Fetches the flights of one rule. Requires rule-detail mode.",
)
async def put_rule(request: RuleRequest) -> StateResponse:
    """
    Select a rule.

    Raises:
        HTTPException: 409 if rule-detail mode is not active.
    """
    controller = get_controller()
    try:
        controller.select_rule(request.rule_id)
    except ValueError as e:
        logger.warning("rule_selection_rejected", rule_id=request.rule_id, error=str(e))
        raise HTTPException(status_code=409, detail=str(e)) from e
    return build_state(controller)


@router.delete(
    "/rule",
    response_model=StateResponse,
    summary="Clear the rule",
    description="Returns from a rule's flights to the rule catalog.",
)
async def delete_rule() -> StateResponse:
    """Return to the rule catalog."""
    controller = get_controller()
    controller.clear_rule()
    return build_state(controller)


@router.get(
    "/rules",
    response_model=RulesResponse,
    summary="Get the rule catalog",
    description="Rule catalog loaded when rule-detail mode was entered.",
)
async def get_rules() -> RulesResponse:
    """Get the last loaded rule catalog."""
    controller = get_controller()
    rules = [RuleModel(id=r.id, name=r.name, description=r.description) for r in controller.rules]
    return RulesResponse(rules=rules, count=len(rules))
