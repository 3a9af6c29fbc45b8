"""JSON API over the trading-log store.

Run with:
    uvicorn api:app --reload

Reads are public. Writes need ``Authorization: Bearer <session token>``;
get a token from POST /api/auth/login.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager, contextmanager
from typing import Any, Optional

from fastapi import APIRouter, Depends, FastAPI, Header, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from analytics.compare import (
    calculate_comparison_stats, compare_trading_logs, notes_summary, tag_summary, unverified,
)
from analytics.quarters import group_weeks_by_quarter, quarters_to_dicts
from analytics.stats import calculate_stats
from analytics.time_range import filter_days_by_time_range
from analytics.weekly import group_logs_by_month, group_logs_by_week
from auth import authenticate_user, create_session_token, get_user_by_token
from config import TIME_RANGES
from db import (
    StoreError, delete_note, get_all_days, get_base_data, get_day, get_note,
    get_notes_in_range, init_db, record_upload, upsert_note, validate_date,
)
from journal import backtest_queue
from journal.compare_store import (
    add_compare_log, add_compare_notes, assign_compare_tag, delete_compare_day,
    delete_replaced_compare, get_compare_day, get_compare_days, get_latest_compare,
    get_replaced_compare, get_replaced_compares, merge_compare_to_base, merge_week_to_base,
    remove_compare_tag, set_compare_verified, update_compare_tags, verify_week,
)
from journal.tag_store import (
    DuplicateTagError, adjust_tag_usage, delete_tag, get_tags, recalculate_tag_usage, save_tag,
)
from models import AnalysisRecord
from parsers import LogParseError, build_day_record

logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class LoginIn(BaseModel):
    email: str = ""
    password: str = ""


class LogUploadIn(BaseModel):
    logData: Optional[str] = None


class NoteIn(BaseModel):
    date: Optional[str] = None
    notes: Optional[str] = None


class CompareActionIn(BaseModel):
    action: Optional[str] = None
    date: Optional[str] = None
    notes: Optional[str] = None
    verified: Any = None
    verifiedBy: Optional[str] = None
    tagId: Optional[str] = None
    impact: Optional[str] = None
    tagAssignments: Any = None
    mergeAll: bool = True
    mergeTradeIds: Optional[list[int]] = None
    mergeDailyStats: bool = False


class DateIn(BaseModel):
    date: Optional[str] = None


class TagIn(BaseModel):
    id: Optional[str] = None
    name: Any = None
    description: Optional[str] = None
    color: Optional[str] = None


class TagUsageIn(BaseModel):
    tagIds: Any = None
    impact: Optional[str] = None
    action: Optional[str] = None


class QueueActionIn(BaseModel):
    action: Optional[str] = None
    date: Optional[str] = None
    dates: Any = None
    priority: Optional[str] = None
    status: Optional[str] = None
    notes: Optional[str] = None
    addedBy: Optional[str] = None


def require_user(authorization: Optional[str] = Header(default=None)) -> dict:
    """Capability check for write endpoints."""
    token = ""
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
    user = get_user_by_token(token)
    if not user:
        raise ApiError(401, "Authentication required")
    return user


def _check_date(value: str) -> str:
    try:
        return validate_date(value)
    except ValueError as e:
        raise ApiError(400, str(e))


@contextmanager
def _rejecting_bad_input():
    """Turn store-level input errors into 400 (409 for a duplicate tag)."""
    try:
        yield
    except DuplicateTagError as e:
        raise ApiError(409, str(e))
    except ValueError as e:
        raise ApiError(400, str(e))


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

health_router = APIRouter()


@health_router.get("/health")
def health():
    return {"ok": True}


auth_router = APIRouter(prefix="/api/auth", tags=["auth"])


@auth_router.post("/login")
def login(body: LoginIn):
    user = authenticate_user(body.email, body.password)
    if not user:
        raise ApiError(401, "Invalid email or password")
    return {"token": create_session_token(user["id"]), "user": user}


router = APIRouter(prefix="/api/trading-data", tags=["trading-data"])


@router.get("")
def get_trading_data():
    """The most recently uploaded day, or null."""
    return get_base_data()


@router.post("")
def post_trading_data(body: LogUploadIn, user: dict = Depends(require_user)):
    if not body.logData:
        raise ApiError(400, "Log data is required")
    try:
        record = build_day_record(body.logData)
    except LogParseError as e:
        raise ApiError(422, f"Failed to parse log data: {e}")
    record_upload(record, user["id"])
    return {"success": True, "date": record.date}


@router.get("/base")
def get_base(date: Optional[str] = Query(default=None)):
    if not date:
        raise ApiError(400, "Date parameter is required")
    day = get_day(date)
    if day is None:
        raise ApiError(404, "No base data found for the specified date")
    return day.to_dict()


@router.get("/weeks")
def get_weeks():
    return [w.to_dict() for w in group_logs_by_week(get_all_days())]


@router.get("/quarters")
def get_quarters():
    weeks = group_logs_by_week(get_all_days())
    return quarters_to_dicts(group_weeks_by_quarter(weeks))


@router.get("/monthly")
def get_monthly():
    return [m.to_dict() for m in group_logs_by_month(get_all_days())]


@router.get("/stats")
def get_stats(time_range: str = Query(default="all", alias="range")):
    if time_range not in TIME_RANGES:
        raise ApiError(400, f"Unknown range {time_range!r}")
    return calculate_stats(filter_days_by_time_range(get_all_days(), time_range))


@router.get("/notes")
def get_notes(
    date: Optional[str] = Query(default=None),
    start_date: Optional[str] = Query(default=None, alias="startDate"),
    end_date: Optional[str] = Query(default=None, alias="endDate"),
):
    if not date and start_date and end_date:
        _check_date(start_date)
        _check_date(end_date)
        notes = get_notes_in_range(start_date, end_date)
        return {"success": True, "data": [n.to_dict() for n in notes]}
    if not date:
        raise ApiError(400, "Date parameter is required")
    return {"success": True, "data": get_note(_check_date(date)).to_dict()}


@router.post("/notes")
def post_note(body: NoteIn, user: dict = Depends(require_user)):
    if not body.date or body.notes is None:
        raise ApiError(400, "Date and notes are required")
    note = upsert_note(_check_date(body.date), body.notes)
    return {"success": True, "message": "Notes saved successfully", "data": note.to_dict()}


@router.delete("/notes")
def remove_note(date: Optional[str] = Query(default=None), user: dict = Depends(require_user)):
    if not date:
        raise ApiError(400, "Date parameter is required")
    deleted = delete_note(_check_date(date))
    message = "Notes deleted successfully" if deleted else "Notes already deleted"
    return {"success": True, "message": message}


# -- compare logs --------------------------------------------------------------

COMPARE_NOT_FOUND = "Compare data not found for the specified date"
WEEK_NOT_FOUND = "No compare data found for the specified week"
COMPARE_ACTIONS = (
    "verify, addNotes, merge, mergeWeek, verifyWeek, assignTag, removeTag, updateTags, delete"
)


@router.get("/compare")
def get_compare():
    """The most recently uploaded compare log, or null."""
    day = get_latest_compare()
    return day.to_dict() if day else None


@router.post("/compare")
def post_compare(body: LogUploadIn, user: dict = Depends(require_user)):
    if not body.logData:
        raise ApiError(400, "Log data is required")
    try:
        record = build_day_record(body.logData)
    except LogParseError as e:
        raise ApiError(422, f"Failed to parse log data: {e}")
    _, replaced = add_compare_log(record)
    return {"success": True, "date": record.date, "replaced": replaced}


@router.get("/compare/manage")
def get_compare_for_date(date: Optional[str] = Query(default=None)):
    if not date:
        raise ApiError(400, "Date parameter is required")
    day = get_compare_day(date)
    if day is None:
        raise ApiError(404, COMPARE_NOT_FOUND)
    return day.to_dict()


@router.post("/compare/manage")
def manage_compare(body: CompareActionIn, user: dict = Depends(require_user)):
    if not body.action or not body.date:
        raise ApiError(400, "Action and date are required")
    action, date = body.action, body.date
    verified_by = body.verifiedBy or user["email"]

    if action == "verify":
        if not isinstance(body.verified, bool):
            raise ApiError(400, "Verified parameter must be a boolean")
        day = set_compare_verified(date, body.verified, verified_by)
        if day is None:
            raise ApiError(404, COMPARE_NOT_FOUND)
        message = "Compare data marked as verified" if body.verified else "Compare data marked as unverified"
        return {"success": True, "message": message, "data": day.to_dict()}

    if action == "addNotes":
        if not body.notes:
            raise ApiError(400, "Notes are required for addNotes action")
        day = add_compare_notes(date, body.notes)
        if day is None:
            raise ApiError(404, COMPARE_NOT_FOUND)
        return {"success": True, "message": "Notes added to compare data", "data": day.to_dict()}

    if action == "merge":
        merged = merge_compare_to_base(
            date,
            merge_all=body.mergeAll,
            merge_trade_ids=body.mergeTradeIds,
            merge_daily_stats=body.mergeDailyStats,
            user_id=user["id"],
        )
        if merged is None:
            raise ApiError(404, COMPARE_NOT_FOUND)
        return {"success": True, "message": "Compare data successfully merged to base data"}

    if action == "mergeWeek":
        if merge_week_to_base(_check_date(date), user_id=user["id"]) == 0:
            raise ApiError(404, WEEK_NOT_FOUND)
        return {"success": True, "message": "All compare data for the week successfully merged to base data"}

    if action == "verifyWeek":
        if verify_week(_check_date(date), verified_by) == 0:
            raise ApiError(404, WEEK_NOT_FOUND)
        return {"success": True, "message": "All compare data for the week successfully marked as verified"}

    if action == "assignTag":
        if not body.tagId or not body.impact:
            raise ApiError(400, "TagId and impact are required for assignTag action")
        with _rejecting_bad_input():
            day = assign_compare_tag(date, body.tagId, body.impact)
        if day is None:
            raise ApiError(404, COMPARE_NOT_FOUND)
        return {"success": True, "message": "Tag assigned to compare data", "data": day.to_dict()}

    if action == "removeTag":
        if not body.tagId:
            raise ApiError(400, "TagId is required for removeTag action")
        day = remove_compare_tag(date, body.tagId)
        if day is None:
            raise ApiError(404, COMPARE_NOT_FOUND)
        return {"success": True, "message": "Tag removed from compare data", "data": day.to_dict()}

    if action == "updateTags":
        if not isinstance(body.tagAssignments, list):
            raise ApiError(400, "TagAssignments array is required for updateTags action")
        with _rejecting_bad_input():
            day = update_compare_tags(date, body.tagAssignments)
        if day is None:
            raise ApiError(404, COMPARE_NOT_FOUND)
        return {"success": True, "message": "Tag assignments updated for compare data", "data": day.to_dict()}

    if action == "delete":
        if not delete_compare_day(date):
            raise ApiError(404, COMPARE_NOT_FOUND)
        return {"success": True, "message": "Compare data successfully deleted"}

    raise ApiError(400, f"Invalid action. Supported actions: {COMPARE_ACTIONS}")


def _compare_days(unverified_only: bool):
    days = get_compare_days()
    return unverified(days) if unverified_only else days


@router.get("/compare/stats")
def get_compare_stats(unverified_only: bool = Query(default=False, alias="unverifiedOnly")):
    compare_days = _compare_days(unverified_only)
    dates = {d.date for d in compare_days}
    base_days = [d for d in get_all_days() if d.date in dates]
    return calculate_comparison_stats(compare_days, base_days)


@router.get("/compare/notes")
def get_compare_notes(unverified_only: bool = Query(default=False, alias="unverifiedOnly")):
    return notes_summary(_compare_days(unverified_only), get_all_days())


@router.get("/compare/tags")
def get_compare_tags(
    tag_filter: Optional[str] = Query(default=None, alias="tagFilter"),
    unverified_only: bool = Query(default=False, alias="unverifiedOnly"),
):
    return tag_summary(_compare_days(unverified_only), get_all_days(), tag_filter)


@router.get("/compare/tagged-day/{date}")
def get_tagged_day(date: str):
    """Base and compare analysis side by side for the compare dialog."""
    day = get_compare_day(date)
    if day is None:
        raise ApiError(404, COMPARE_NOT_FOUND)
    base = get_day(date)
    base_analysis = base.analysis if base else AnalysisRecord()
    return {
        "date": date,
        "baseAnalysis": base_analysis.to_dict() if base else {},
        "compareAnalysis": day.analysis.to_dict(),
        "baseTradeList": [t.to_dict() for t in base_analysis.trades],
        "compareTradeList": [t.to_dict() for t in day.analysis.trades],
        "diff": compare_trading_logs(base_analysis, day.analysis),
        "metadata": day.to_dict()["metadata"],
    }


@router.get("/compare/replaced")
def get_replaced(date: Optional[str] = Query(default=None)):
    if not date:
        return [r.to_dict() for r in get_replaced_compares()]
    item = get_replaced_compare(date)
    if item is None:
        raise ApiError(404, "Replaced comparison data not found for the specified date")
    return item.to_dict()


@router.delete("/compare/replaced")
def remove_replaced(body: DateIn, user: dict = Depends(require_user)):
    if not body.date:
        raise ApiError(400, "Date parameter is required")
    if not delete_replaced_compare(body.date):
        raise ApiError(404, "Replaced comparison data not found")
    return {"success": True, "message": "Replaced comparison data successfully deleted"}


# -- tags ----------------------------------------------------------------------

@router.get("/tags")
def list_tags():
    return [t.to_dict() for t in get_tags()]


@router.post("/tags")
def post_tag(body: TagIn, user: dict = Depends(require_user)):
    with _rejecting_bad_input():
        tag = save_tag(body.name, body.description, body.color, tag_id=body.id)
    return tag.to_dict()


@router.put("/tags")
def put_tag_usage(body: TagUsageIn, user: dict = Depends(require_user)):
    if not isinstance(body.tagIds, list) or not body.tagIds:
        raise ApiError(400, "Tag IDs array is required")
    count = adjust_tag_usage(body.tagIds, body.impact, decrement=body.action == "decrement")
    return {"success": True, "updatedTags": count}


@router.delete("/tags")
def remove_tag(tag_id: Optional[str] = Query(default=None, alias="id"), user: dict = Depends(require_user)):
    if not tag_id:
        raise ApiError(400, "Tag ID is required")
    if not delete_tag(tag_id):
        raise ApiError(404, "Tag not found")
    return {"success": True}


@router.post("/tags/recalculate")
def post_recalculate(user: dict = Depends(require_user)):
    summary = recalculate_tag_usage()
    return {
        "success": True,
        "message": "Tag usage counts recalculated successfully",
        "updatedTags": len(summary),
        "summary": summary,
    }


# -- backtest queue --------------------------------------------------------------

queue_router = APIRouter(prefix="/api/backtest-queue", tags=["backtest-queue"])


@queue_router.get("")
def get_backtest_queue(
    status: Optional[str] = Query(default=None),
    stats_only: bool = Query(default=False, alias="statsOnly"),
):
    if stats_only:
        return backtest_queue.queue_stats()
    items = backtest_queue.get_queue(status)
    return {"success": True, "items": [i.to_dict() for i in items], "count": len(items)}


def _queue_date(value: str, message: str) -> str:
    try:
        return validate_date(value)
    except ValueError:
        raise ApiError(400, message)


@queue_router.post("")
def manage_backtest_queue(body: QueueActionIn, user: dict = Depends(require_user)):
    action = body.action
    if not action:
        raise ApiError(400, "Action is required")
    dates_given = isinstance(body.dates, list) and len(body.dates) > 0

    if action == "add":
        if not body.date:
            raise ApiError(400, "Date is required for add action")
        date = _queue_date(body.date, "Invalid date format. Use YYYY-MM-DD")
        with _rejecting_bad_input():
            backtest_queue.add_to_queue([date], body.priority or "medium", body.addedBy or user["email"])
    elif action == "addMultiple":
        if not dates_given:
            raise ApiError(400, "Dates array is required for addMultiple action")
        for d in body.dates:
            _queue_date(str(d), f"Invalid date format: {d}. Use YYYY-MM-DD")
        with _rejecting_bad_input():
            backtest_queue.add_to_queue(body.dates, body.priority or "medium", body.addedBy or user["email"])
    elif action == "updateStatus":
        if not body.date or not body.status:
            raise ApiError(400, "Date and status are required for updateStatus action")
        with _rejecting_bad_input():
            backtest_queue.update_status(body.date, body.status)
    elif action == "updatePriority":
        if not body.date or not body.priority:
            raise ApiError(400, "Date and priority are required for updatePriority action")
        with _rejecting_bad_input():
            backtest_queue.update_priority(body.date, body.priority)
    elif action == "addNotes":
        if not body.date or not body.notes:
            raise ApiError(400, "Date and notes are required for addNotes action")
        backtest_queue.set_notes(body.date, body.notes)
    elif action == "remove":
        if not body.date:
            raise ApiError(400, "Date is required for remove action")
        backtest_queue.remove_from_queue([body.date])
    elif action == "removeMultiple":
        if not dates_given:
            raise ApiError(400, "Dates array is required for removeMultiple action")
        backtest_queue.remove_from_queue(body.dates)
    elif action == "clearCompleted":
        count = backtest_queue.clear_completed()
        return {"success": True, "message": f"Cleared {count} completed items from queue"}
    else:
        raise ApiError(400, f"Unknown action: {action}")
    return {"success": True}


@queue_router.get("/available-dates")
def get_available_dates(
    month: Optional[str] = Query(default=None),
    year: Optional[str] = Query(default=None),
):
    base_dates = [d.date for d in get_all_days()]
    compared = [d.date for d in get_compare_days()]
    return {"success": True, **backtest_queue.available_dates(base_dates, compared, month, year)}


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(title="TradeLog API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(ApiError)
async def _api_error(request: Request, exc: ApiError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StoreError)
async def _store_error(request: Request, exc: StoreError):
    logger.exception("Store failure on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": str(exc)})


app.include_router(health_router)
app.include_router(auth_router)
app.include_router(router)
app.include_router(queue_router)
