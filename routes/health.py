# routes/health.py
from __future__ import annotations

import os

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from db import get_conn

router = APIRouter(tags=["health"])


def _db_ping() -> str | None:
    """None when the database answers, otherwise the error text."""
    try:
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
        return None
    except Exception as exc:
        return f"{type(exc).__name__}: {exc}"


def _runtime_state(request: Request) -> dict:
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        return {"runtime_ready": False, "provider": None, "alerts_running": False}
    dispatcher = runtime.dispatcher
    thread = getattr(dispatcher, "_thread", None) if dispatcher is not None else None
    return {
        "runtime_ready": True,
        "provider": runtime.runner.provider_name,
        "alerts_running": bool(thread and thread.is_alive()),
    }


@router.get("/health")
def health(request: Request):
    """Liveness only: never touches the database."""
    state = _runtime_state(request)
    return {
        "ok": True,
        "env": (os.getenv("ENV") or "").strip(),
        "provider": state["provider"],
        "git_sha": (os.getenv("GIT_SHA") or "").strip() or None,
    }


@router.get("/readyz")
def readyz(request: Request):
    db_error = _db_ping()
    state = _runtime_state(request)
    ready = db_error is None and state["runtime_ready"]
    body = {"ready": ready, "db_ok": db_error is None, "db_error": db_error, **state}
    return JSONResponse(status_code=200 if ready else 503, content=body)
