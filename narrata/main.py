from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text

from narrata.db.base import get_db
from narrata.core.config import settings
from narrata.core.logging import setup_logging
from narrata.routers import leaderboard as leaderboard_router
from narrata.routers import stories as stories_router
from narrata.core.errors import (
    NarrataException,
    narrata_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)

setup_logging()

app = FastAPI(
    title="Narrata Leaderboard API",
    description=(
        "**Narrata leaderboard service**\n\n"
        "Scores authors from their published stories, ranks them overall, "
        "weekly and monthly, and tracks badges and achievements.\n\n"
        "All error responses follow the `{code, message, details}` envelope."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception handlers (most specific first) ---
app.add_exception_handler(NarrataException, narrata_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(leaderboard_router.router)
app.include_router(stories_router.router)


@app.get("/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok", "db": "ok"}` when both the API and the database
    are reachable. Returns HTTP 503 if the DB is down.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except Exception:
        db_status = "unreachable"

    if db_status != "ok":
        return JSONResponse(
            status_code=503,
            content={"status": "error", "db": db_status},
        )
    return {"status": "ok", "db": "ok", "env": settings.APP_ENV}
