# main.py
from contextlib import asynccontextmanager
import logging
import time

from fastapi import FastAPI, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
import uvicorn

from auth import auth_router
from config import (
    ALLOWED_ORIGINS,
    DEBUG,
    SCHEDULER_ENABLED,
    TASK_REMINDER_INTERVAL_MINUTES,
    configure_logging,
    validate_settings,
)
from database import Base, SessionLocal, engine
from expenses import generate_recurring_expenses
from organizer_router import organizer_router
from realtime import websocket_endpoint
from router import router
from scheduler import scheduler
from tasks import check_task_reminders

logger = logging.getLogger(__name__)

Base.metadata.create_all(bind=engine)


def run_recurring_expenses():
    with SessionLocal() as db:
        try:
            generate_recurring_expenses(db)
        except Exception:
            db.rollback()
            logger.exception("Recurring expense job failed")


def run_task_reminders():
    with SessionLocal() as db:
        try:
            check_task_reminders(db)
        except Exception:
            db.rollback()
            logger.exception("Task reminder job failed")


def start_scheduler():
    scheduler.add_job(
        run_recurring_expenses, "cron", hour=0, minute=0, id="recurring_expenses", replace_existing=True
    )  # Run daily at midnight
    scheduler.add_job(
        run_task_reminders,
        "interval",
        minutes=TASK_REMINDER_INTERVAL_MINUTES,
        id="task_reminders",
        replace_existing=True,
    )
    scheduler.start()
    logger.info("Scheduler started")


@asynccontextmanager
async def lifespan(app: FastAPI):
    validate_settings()
    configure_logging()
    if SCHEDULER_ENABLED:
        start_scheduler()
    yield
    if scheduler.running:
        scheduler.shutdown(wait=False)


app = FastAPI(title="Personal Finance & Productivity API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed = (time.perf_counter() - started) * 1000
    logger.info("%s %s %d %.1fms", request.method, request.url.path, response.status_code, elapsed)
    return response


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return JSONResponse(status_code=409, content={"detail": "Resource already exists"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    detail = f"Internal server error: {exc}" if DEBUG else "Internal server error"
    return JSONResponse(status_code=500, content={"detail": detail})


app.include_router(router, prefix="/api", tags=["finance"])
app.include_router(organizer_router, prefix="/api", tags=["organizer"])
app.include_router(auth_router, prefix="/auth", tags=["authentication"])


@app.websocket("/ws")
async def ws(websocket: WebSocket, token: str = None):
    await websocket_endpoint(websocket, token)


@app.get("/")
def home():
    return {"message": "Welcome to the Personal Finance & Productivity API"}


@app.get("/health")
def health():
    return {"status": "ok", "scheduler": scheduler.running}


if __name__ == "__main__":
    uvicorn.run(app, host="127.0.0.1", port=8000)
