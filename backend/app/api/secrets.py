from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

from fastapi import APIRouter, File, HTTPException, UploadFile, Request
from fastapi.responses import HTMLResponse
from google_auth_oauthlib.flow import InstalledAppFlow

from bill_digest.config.paths import CREDENTIALS_PATH, SECRETS_DIR, TOKEN_PATH
from bill_digest.gmail.client import SCOPES, missing_scopes
from backend.app.status import run_status_store

router = APIRouter()
# Pending Google logins keyed by OAuth state; a state is single-use.
_oauth_flows: dict[str, InstalledAppFlow] = {}


def _read_json_upload(file: UploadFile) -> tuple[bytes, Dict[str, Any]]:
    if not file.filename or not file.filename.endswith(".json"):
        raise HTTPException(status_code=400, detail="Please upload a JSON file.")

    content = file.file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Empty upload.")

    try:
        data = json.loads(content)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise HTTPException(status_code=400, detail="Expected a JSON object.")
    return content, data


def _token_scopes(data: Dict[str, Any]) -> List[str]:
    scopes = data.get("scopes") or []
    if isinstance(scopes, str):
        return scopes.split()
    return list(scopes)


def _reject_missing_scopes(granted: List[str]) -> None:
    missing = missing_scopes(granted)
    if missing:
        raise HTTPException(
            status_code=400,
            detail=f"Token is missing Gmail scopes: {', '.join(missing)}",
        )


def _write_secret(target: Path, content: bytes) -> dict:
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(content)
    return {"ok": True, "path": str(target)}


def _callback_url(request: Request) -> str:
    base_url = str(request.base_url).rstrip("/")
    return f"{base_url}/api/secrets/oauth/callback"


@router.get("/secrets/status")
def secrets_status() -> dict:
    token_scopes: List[str] = []
    if TOKEN_PATH.exists():
        try:
            token_scopes = _token_scopes(json.loads(TOKEN_PATH.read_text(encoding="utf-8")))
        except ValueError:
            token_scopes = []
    return {
        "ok": True,
        "secrets_dir": str(SECRETS_DIR),
        "credentials_present": CREDENTIALS_PATH.exists(),
        "token_present": TOKEN_PATH.exists(),
        "missing_scopes": missing_scopes(token_scopes) if TOKEN_PATH.exists() else list(SCOPES),
    }


@router.post("/secrets/credentials")
def upload_credentials(file: UploadFile = File(...)) -> dict:
    content, data = _read_json_upload(file)
    # Desktop and web OAuth clients are both accepted by InstalledAppFlow.
    if not ({"installed", "web"} & set(data)):
        raise HTTPException(
            status_code=400,
            detail="Not an OAuth client file (expected an 'installed' or 'web' section).",
        )
    return _write_secret(CREDENTIALS_PATH, content)


@router.post("/secrets/token")
def upload_token(file: UploadFile = File(...)) -> dict:
    content, data = _read_json_upload(file)
    _reject_missing_scopes(_token_scopes(data))
    return _write_secret(TOKEN_PATH, content)


@router.post("/secrets/oauth")
def start_oauth(request: Request) -> dict:
    if not CREDENTIALS_PATH.exists():
        raise HTTPException(
            status_code=400,
            detail=f"Missing Gmail credentials at {CREDENTIALS_PATH}. Upload them first.",
        )

    flow = InstalledAppFlow.from_client_secrets_file(str(CREDENTIALS_PATH), SCOPES)
    flow.redirect_uri = _callback_url(request)

    auth_url, state = flow.authorization_url(
        access_type="offline",
        include_granted_scopes="true",
        prompt="consent",
    )
    _oauth_flows[state] = flow
    run_status_store.update(step="oauth", detail="Waiting for Google login")
    return {"ok": True, "auth_url": auth_url}


@router.get("/secrets/oauth/callback")
def oauth_callback(request: Request, state: str) -> HTMLResponse:
    flow = _oauth_flows.pop(state, None)
    if flow is None:
        raise HTTPException(status_code=400, detail="Unknown or expired OAuth state.")

    try:
        flow.fetch_token(authorization_response=str(request.url))
    except Exception as exc:
        run_status_store.update(step="oauth", detail=f"OAuth failed: {exc}")
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    creds = flow.credentials
    granted = list(getattr(creds, "granted_scopes", None) or creds.scopes or [])
    try:
        # The summary cannot be sent when gmail.send was unticked on the consent screen.
        _reject_missing_scopes(granted)
    except HTTPException as exc:
        run_status_store.update(step="oauth", detail=exc.detail)
        raise

    TOKEN_PATH.parent.mkdir(parents=True, exist_ok=True)
    TOKEN_PATH.write_text(creds.to_json(), encoding="utf-8")

    run_status_store.update(step="oauth", detail="Gmail OAuth completed")
    return HTMLResponse(
        "<h2>Gmail connected</h2><p>bill-digest can now read bills and send the summary. "
        "You can close this window.</p>"
    )
