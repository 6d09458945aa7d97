"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bizzybot.api import events, leads, messages
from bizzybot.config import get_settings
from bizzybot.database import create_tables
from bizzybot.logging_config import setup_logging
from bizzybot.services.identity import ContactIndexCache
from bizzybot.services.reasoning import build_reasoning_service

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level)
    await create_tables()
    yield


app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    description="Lead scoring for AI responder conversations",
    lifespan=lifespan,
)

# Shared per-process services, injected through bizzybot.dependencies
app.state.contact_cache = ContactIndexCache()
app.state.reasoning_service = build_reasoning_service(settings)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(events.router, prefix="/api/v1")
app.include_router(leads.router, prefix="/api/v1")
app.include_router(messages.router, prefix="/api/v1")


@app.get("/health")
async def health():
    return {"status": "ok", "app": settings.app_name}
