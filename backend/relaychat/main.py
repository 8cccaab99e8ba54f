# ------------------------------------------------------------
# Module: relaychat/main.py
# Purpose: FastAPI application entry point.
# ------------------------------------------------------------

"""ASGI app: `uvicorn relaychat.main:app`."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from relaychat.api.routes import router as v1_router
from relaychat.core.config import settings
from relaychat.core.lifespan import lifespan
from relaychat.core.logging import configure_logging

configure_logging()

app = FastAPI(title="RelayChat API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(v1_router, prefix="/v1")
