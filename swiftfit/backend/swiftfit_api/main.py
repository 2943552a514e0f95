import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from .api.routes import (
    auth,
    classes,
    bookings,
    attendance,
    waitlist,
    credits,
    purchases,
    class_reminders,
    cron,
    payment_methods,
    upload,
    catalog,
    studio_info,
    misc,
    reports,
)
from .core.errors import install_error_handlers
from .db.session import Base, engine, SessionLocal
from .config import get_settings
from .services import storage
from .services.admin import ensure_admin_exists
from .workers.scheduler import get_scheduler

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Swift Fit Studio API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
install_error_handlers(app)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "%s %s -> %s",
        request.method,
        request.url.path,
        response.status_code,
        extra={"duration_ms": round((time.perf_counter() - started) * 1000, 1)},
    )
    return response


for module in (
    auth,
    classes,
    bookings,
    attendance,
    waitlist,
    credits,
    purchases,
    class_reminders,
    cron,
    payment_methods,
    upload,
    catalog,
    studio_info,
    misc,
    reports,
):
    app.include_router(module.router, prefix="/api")

app.mount(
    "/media",
    StaticFiles(directory=storage.BASE_MEDIA_DIR, check_dir=False),
    name="media",
)

scheduler = get_scheduler()


@app.on_event("startup")
async def startup_event() -> None:
    Base.metadata.create_all(bind=engine)
    storage.ensure_media_directory()
    settings = get_settings()
    with SessionLocal() as session:
        ensure_admin_exists(session, settings.admin_email, settings.default_admin_password)
    if settings.scheduler_enabled:
        scheduler.start()
        logger.info("Background scheduler started")


@app.on_event("shutdown")
async def shutdown_event() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
