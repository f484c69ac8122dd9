from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text

from momentum_engine.db.base import get_db
from momentum_engine.core.config import settings
from momentum_engine.core.logging_config import configure_logging
from momentum_engine.routers import momentum as momentum_router
from momentum_engine.routers import progression as progression_router
from momentum_engine.routers import habits as habits_router
from momentum_engine.routers import coaching as coaching_router
from momentum_engine.core.errors import (
    MomentumException,
    momentum_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)

configure_logging()

app = FastAPI(
    title="Momentum Engine API",
    description=(
        "**Momentum & Habit-Progression Engine**\n\n"
        "Turns daily check-ins into a momentum score, streaks and consistency, "
        "drives the 7-day commitment and level-up flow, and picks the single "
        "reward to celebrate.\n\n"
        "All error responses follow the `{code, message, details, toast}` envelope."
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
app.add_exception_handler(MomentumException, momentum_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(momentum_router.router)
app.include_router(progression_router.router)
app.include_router(habits_router.router)
app.include_router(coaching_router.router)


@app.get("/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok", "db": "ok"}` when both the API and the record
    store are reachable. Returns HTTP 503 if the store is down.
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
