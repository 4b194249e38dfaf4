import logging
import re
from datetime import datetime, timezone

from fastapi import BackgroundTasks, Depends, FastAPI, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.exc import SQLAlchemyError

from punktual import auth, config, crud, csrf, database, models, qr_utils, schemas
from punktual.calendar_links import generate_calendar_links, generate_ics, has_required_fields
from punktual.completeness import check_completeness, ends_before_start
from punktual.errors import INTERNAL_ERROR, ApiError, register_error_handlers
from punktual.snippets import generate_calendar_code

# --- Logging ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)
logger = logging.getLogger("punktual")

# --- DB tables ---
models.Base.metadata.create_all(bind=database.engine)

app = FastAPI(
    title="Punktual",
    description="Add-to-calendar links, embeddable buttons and tracked short links for events.",
    version="1.0.0",
)
register_error_handlers(app)

# Last data export per user, for the once-per-hour limit
app.state.last_export = {}

origins = ["*"] if not config.IS_PROD else [config.PUBLIC_BASE_URL or "http://localhost:8000"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

CLICK_WINDOW_SECONDS = 60
EXPORT_INTERVAL_SECONDS = 3600
QUOTA_MESSAGE = "Monthly limit reached. Upgrade your plan to create more events."


def public_base_url(request: Request) -> str:
    return config.PUBLIC_BASE_URL or str(request.base_url).rstrip("/")

def short_url(request: Request, short_id: str) -> str:
    return f"{public_base_url(request)}/eventid/{short_id}"

def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("x-real-ip") or (request.client.host if request.client else "0.0.0.0")


@app.get("/config", include_in_schema=False)
def get_config(request: Request):
    return {"public_base_url": public_base_url(request)}

# Health check (useful for uptime monitors & load balancers)
@app.get("/health", include_in_schema=False)
def health():
    return {"status": "ok", "env": config.ENVIRONMENT}


# ---------- CSRF ----------
@app.get("/api/csrf-token", response_model=schemas.CsrfTokenOut)
def csrf_token(response: Response):
    token = csrf.issue_token(response)
    return {"token": token, "success": True}


# ---------- Form helpers (stateless) ----------
@app.post("/api/status", response_model=schemas.Completeness)
def form_status(payload: schemas.StatusRequest):
    return check_completeness(payload.event_data, payload.button_data)

@app.post("/api/calendar-links")
def calendar_links(event: schemas.EventData):
    return generate_calendar_links(event)

@app.post("/api/ics")
def download_ics(event: schemas.EventData):
    if not has_required_fields(event):
        raise ApiError(400, "Title and start date are required")
    filename = re.sub(r"[^A-Za-z0-9_-]+", "-", event.title).strip("-").lower() or "event"
    return Response(
        content=generate_ics(event),
        media_type="text/calendar; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}.ics"'},
    )

@app.post("/api/code", response_model=schemas.CodeOut)
def embed_code(payload: schemas.CodeRequest):
    code = generate_calendar_code(
        payload.event_data, payload.button_data, payload.output_type, payload.minified
    )
    return {"code": code}


# ---------- Short links ----------
@app.post("/api/short-links", response_model=schemas.ShortLinkCreated)
def create_short_link(
    request: Request,
    link_in: schemas.ShortLinkCreate,
    _csrf=Depends(csrf.require_csrf),
    db=Depends(database.get_db),
    user=Depends(auth.get_optional_user),
):
    if not link_in.original_url.strip():
        raise ApiError(400, "Original URL is required")
    try:
        link = crud.create_short_link(
            db, link_in.original_url.strip(), link_in.event_title, user.user_id if user else None
        )
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to store short link")
        raise ApiError(500, "Failed to create short link")
    if link is None:
        raise ApiError(500, "Failed to generate unique ID")
    logger.info("Created short link %s by=%s", link.short_id, user.user_id if user else "anonymous")
    return {"success": True, "short_url": short_url(request, link.short_id), "short_id": link.short_id}

@app.post("/api/short-links/calendar")
def create_calendar_short_links(
    request: Request,
    payload: schemas.CalendarShortLinksCreate,
    _csrf=Depends(csrf.require_csrf),
    db=Depends(database.get_db),
    user=Depends(auth.get_optional_user),
):
    """Shorten every platform link; data: URIs and failures keep the original URL."""
    shortened = {}
    for platform, url in payload.calendar_links.items():
        if not url:
            continue
        if url.startswith("data:"):
            shortened[platform] = url
            continue
        title = f"{payload.event_title} - {platform}" if payload.event_title else platform
        try:
            link = crud.create_short_link(db, url, title, user.user_id if user else None)
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to create short link for %s", platform)
            link = None
        shortened[platform] = short_url(request, link.short_id) if link else url
    return shortened

@app.get("/api/short-links", response_model=schemas.PaginatedShortLinks)
def list_short_links(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db=Depends(database.get_db),
    user=Depends(auth.get_current_user),
):
    items = crud.get_user_short_links(db, user.user_id, skip=skip, limit=limit)
    total = crud.count_user_short_links(db, user.user_id)
    return {"items": items, "total": total, "skip": skip, "limit": limit}

@app.delete("/api/short-links/{short_id}", response_model=schemas.MessageOut)
def deactivate_short_link(
    short_id: str,
    user=Depends(auth.get_current_user),
    _csrf=Depends(csrf.require_csrf),
    db=Depends(database.get_db),
):
    if not crud.deactivate_short_link(db, short_id, user.user_id):
        raise ApiError(404, "Short link not found")
    logger.info("Deactivated short link %s by=%s", short_id, user.user_id)
    return {"ok": True, "detail": f"Short link '{short_id}' deactivated"}

@app.get("/api/short-links/{short_id}/qr", response_model=schemas.QrOut)
def short_link_qr(
    short_id: str,
    request: Request,
    image_format: str = Query("png", alias="format", pattern="^(png|svg)$"),
    db=Depends(database.get_db),
):
    link = crud.get_active_short_link(db, short_id)
    if not link:
        raise ApiError(404, "Short link not found")
    return {
        "qr_base64": qr_utils.generate_qr_base64(short_url(request, link.short_id), image_format),
        "media_type": qr_utils.MEDIA_TYPES[image_format],
    }


# ---------- Events ----------
@app.post("/api/events", response_model=schemas.EventCreated)
def create_event(
    payload: schemas.EventCreate,
    user=Depends(auth.get_current_user),
    _csrf=Depends(csrf.require_csrf),
    db=Depends(database.get_db),
):
    event_data = payload.event_data
    if not has_required_fields(event_data):
        raise ApiError(400, "Title and start date are required")
    if ends_before_start(event_data):
        raise ApiError(400, "End must be after start")

    try:
        month = crud.month_start()
        if crud.get_usage(db, user.user_id, month) >= config.MONTHLY_EVENT_LIMIT:
            logger.info("Monthly limit reached for %s", user.user_id)
            raise ApiError(429, QUOTA_MESSAGE)
        code = generate_calendar_code(event_data, payload.button_data)
        event, button = crud.create_event(db, user.user_id, event_data, payload.button_data, code, month)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error creating event for %s", user.user_id)
        raise ApiError(500, INTERNAL_ERROR)

    logger.info("Created event %s by=%s", event.id, user.user_id)
    return {
        "success": True,
        "event": schemas.EventOut.model_validate(event),
        "button": schemas.ButtonOut.model_validate(button),
        "code": code,
    }

@app.get("/api/events", response_model=schemas.PaginatedEvents)
def list_events(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    db=Depends(database.get_db),
    user=Depends(auth.get_current_user),
):
    items = crud.get_user_events(db, user.user_id, skip=skip, limit=limit)
    total = crud.count_user_events(db, user.user_id)
    return {"items": items, "total": total, "skip": skip, "limit": limit}

@app.get("/api/events/quota", response_model=schemas.QuotaOut)
def event_quota(db=Depends(database.get_db), user=Depends(auth.get_current_user)):
    used = crud.get_usage(db, user.user_id, crud.month_start())
    limit = config.MONTHLY_EVENT_LIMIT
    return {"used": used, "limit": limit, "remaining": max(limit - used, 0)}


# ---------- Click tracking ----------
@app.post("/api/track-click", response_model=schemas.TrackClickOut)
def track_click(payload: schemas.TrackClick, request: Request, db=Depends(database.get_db)):
    if not payload.event_id or not payload.platform:
        raise ApiError(400, "Missing required fields: eventId, platform")
    if payload.platform not in {p.value for p in schemas.Platform}:
        raise ApiError(400, "Invalid platform")

    ip = client_ip(request)
    now = datetime.now(timezone.utc)
    try:
        if crud.has_recent_click(db, payload.event_id, ip, CLICK_WINDOW_SECONDS, now):
            return {"success": True, "tracked": False, "message": "Duplicate click detected (rate limited)"}
        crud.record_click(
            db,
            payload.event_id,
            payload.platform,
            ip,
            request.headers.get("user-agent", ""),
            request.headers.get("referer", ""),
            now,
        )
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error tracking click for %s", payload.event_id)
        raise ApiError(500, "Failed to track click")
    return {"success": True, "tracked": True, "message": "Click tracked successfully"}


# ---------- User data ----------
@app.get("/api/user/export-data")
def export_user_data(request: Request, db=Depends(database.get_db), user=Depends(auth.get_current_user)):
    now = datetime.now(timezone.utc)
    last = request.app.state.last_export.get(user.user_id)
    if last and (now - last).total_seconds() < EXPORT_INTERVAL_SECONDS:
        logger.warning("Data export rate limit exceeded for %s", user.user_id)
        raise ApiError(429, "You can export your data once per hour. Please try again later.")
    request.app.state.last_export[user.user_id] = now

    events = db.query(models.Event).filter_by(user_id=user.user_id).all()
    links = db.query(models.ShortLink).filter_by(user_id=user.user_id).all()
    body = {
        "export_metadata": {"exported_at": now.isoformat(), "user_id": user.user_id, "data_version": "1.0"},
        "events": [schemas.EventOut.model_validate(e).model_dump(mode="json", by_alias=True) for e in events],
        "short_links": [schemas.ShortLinkOut.model_validate(s).model_dump(mode="json", by_alias=True) for s in links],
        "summary": {"total_events": len(events), "total_short_links": len(links)},
    }
    logger.info("Exported data for %s", user.user_id)
    return JSONResponse(
        body,
        headers={
            "Content-Disposition": f'attachment; filename="punktual-data-export-{user.user_id}.json"',
            "Cache-Control": "no-store",
        },
    )

@app.delete("/api/user/data", response_model=schemas.MessageOut)
def delete_user_data(
    payload: schemas.DataDeletion,
    user=Depends(auth.get_current_user),
    _csrf=Depends(csrf.require_csrf),
    db=Depends(database.get_db),
):
    if payload.confirmation != f"DELETE_{user.user_id}"[:20]:
        raise ApiError(400, "Invalid confirmation token")
    try:
        counts = crud.delete_user_data(db, user.user_id)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error deleting data for %s", user.user_id)
        raise ApiError(500, INTERNAL_ERROR)
    logger.info("Deleted data for %s: %s", user.user_id, counts)
    return {"ok": True, "detail": "All your data has been deleted"}


# ---------- Redirects ----------
def count_click(short_id: str) -> None:
    """Runs after the redirect was sent; failures only get logged."""
    db = database.SessionLocal()
    try:
        crud.increment_click(db, short_id)
    except Exception:
        logger.exception("Failed to increment click for %s", short_id)
    finally:
        db.close()

def resolve_short_link(short_id: str, background_tasks: BackgroundTasks, db) -> RedirectResponse:
    if not short_id or not short_id.strip():
        raise ApiError(400, "Short ID is required")
    try:
        link = crud.get_active_short_link(db, short_id)
    except SQLAlchemyError:
        logger.exception("Lookup failed for short link %s", short_id)
        raise ApiError(500, INTERNAL_ERROR)
    if not link:
        raise ApiError(404, "Short link not found")
    background_tasks.add_task(count_click, short_id)
    return RedirectResponse(url=link.original_url, status_code=302)

@app.get("/eventid/", include_in_schema=False)
def redirect_missing_id():
    raise ApiError(400, "Short ID is required")

@app.get("/eventid/{short_id}", include_in_schema=False)
def redirect_eventid(short_id: str, background_tasks: BackgroundTasks, db=Depends(database.get_db)):
    return resolve_short_link(short_id, background_tasks, db)

# Pretty redirect /{short_id}
RESERVED = {"", "api", "eventid", "docs", "openapi.json", "redoc", "config", "health", "favicon.ico"}

@app.get("/{short_id}", include_in_schema=False)
def redirect_pretty(short_id: str, background_tasks: BackgroundTasks, db=Depends(database.get_db)):
    if short_id in RESERVED or not re.fullmatch(r"[A-Za-z0-9_-]{2,32}", short_id):
        raise ApiError(404, "Short link not found")
    return resolve_short_link(short_id, background_tasks, db)
