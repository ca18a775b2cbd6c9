"""
Musorobot — FastAPI backend
Telegram webhook for the waste pickup bot plus the dashboard order API.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from musorobot.api.config import settings
from musorobot.api.db.database import engine, init_db
from musorobot.api.routers import admin, webhook

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    await init_db()
    logger.info("🚀 Musorobot API starting...")
    yield
    await engine.dispose()
    logger.info("🛑 Musorobot API shut down.")


app = FastAPI(
    title="Musorobot API",
    description="Waste pickup bot backend",
    version="1.0.0",
    lifespan=lifespan,
)

# ── CORS ───────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ────────────────────────────────────────────────
app.include_router(webhook.router, prefix="/api/webhooks", tags=["Telegram Webhook"])
app.include_router(admin.router, prefix="/api/admin", tags=["Admin Dashboard"])


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "Musorobot API"}
