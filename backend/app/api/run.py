# backend/app/api/run.py
from typing import Any, Optional

from fastapi import APIRouter
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from bill_digest.app.run import run_once
from bill_digest.config.settings import load_settings
from backend.app.status import run_status_store

router = APIRouter()


class RunRequest(BaseModel):
    # None falls back to BILL_DIGEST_DRY_RUN.
    dry_run: Optional[bool] = None


@router.post("/run")
async def run_endpoint(payload: Optional[RunRequest] = None) -> dict:
    dry_run = payload.dry_run if payload else None

    run_status_store.update(
        state="running",
        step="starting",
        detail="Starting run",
        metrics={},
        summary=None,
        recent_errors=[],
    )

    def progress_cb(step: str, event: dict[str, Any]) -> None:
        error = event.get("error")
        if error:
            # Non-fatal: the run keeps its current step.
            run_status_store.push_error(error)
            return

        status_update: dict[str, Any] = {
            "state": "running",
            "step": step,
            "detail": event.get("detail"),
        }
        if "metrics" in event:
            status_update["metrics"] = event.get("metrics") or {}
        run_status_store.update(**status_update)

    try:
        settings = load_settings(dry_run=dry_run)
        # Gmail calls block, so run the pipeline in a worker thread to keep FastAPI responsive.
        summary = await run_in_threadpool(
            run_once,
            settings=settings,
            verbose=False,
            progress_cb=progress_cb,
        )
    except Exception as exc:
        run_status_store.update(state="error", step="error", detail=f"{type(exc).__name__}: {exc}")
        raise

    run_status_store.update(
        state="done",
        step="done",
        detail="Run completed",
        summary=summary,
        metrics=summary,
    )
    return {"ok": True, "summary": summary}


@router.get("/run/status")
async def run_status() -> dict:
    return {"ok": True, "status": run_status_store.snapshot()}
