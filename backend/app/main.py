# backend/app/main.py
import os

from fastapi import FastAPI

from bill_digest.config.log import configure_logging
from backend.app.api.run import router as run_router
from backend.app.api.secrets import router as secrets_router

configure_logging(os.getenv("BILL_DIGEST_LOG_LEVEL"))

app = FastAPI(title="bill-digest API")
app.include_router(run_router, prefix="/api")
app.include_router(secrets_router, prefix="/api")
