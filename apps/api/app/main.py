from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from app import __version__
from app.api.v1.router import api_router
from app.core.config import settings
from app.core.database import Base, engine
from app.core.logging import configure_logging
from app.services.runtime import build_runtime


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    Base.metadata.create_all(bind=engine)
    runtime = build_runtime()
    app.state.runtime = runtime
    await runtime.start()
    logger.info(f"StroomSlim API v{__version__} started ({settings.env})")
    yield
    await runtime.close()


app = FastAPI(
    title="StroomSlim API",
    version=__version__,
    description="Belgian day-ahead electricity prices and price-drop email alerts.",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health():
    return {"status": "ok", "version": __version__, "timestamp": datetime.now(timezone.utc).isoformat()}


app.include_router(api_router, prefix=settings.api_v1_prefix)
