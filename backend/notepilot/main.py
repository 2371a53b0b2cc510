"""
NotePilot - FastAPI Application Entry Point.

Feature-based modular architecture:
  Each feature in notepilot/features/ has its own service, and a router
  when it is exposed over HTTP.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from notepilot.config import get_settings
from notepilot.background.scheduler import init_scheduler, shutdown_scheduler

# ── Feature Routers ──────────────────────────────────────
from notepilot.features.agent.router import router as agent_router
from notepilot.features.integrations.router import router as integrations_router
from notepilot.features.webhooks.router import router as webhooks_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup & shutdown."""
    settings = get_settings()
    print(f"🚀 {settings.APP_NAME} v{settings.APP_VERSION} starting...")
    print(f"🤖 LLM Provider: {settings.LLM_PROVIDER} ({settings.LLM_MODEL})")
    print(f"🔗 Supabase: {settings.SUPABASE_URL[:40]}...")
    init_scheduler()
    yield
    shutdown_scheduler()
    print("👋 Shutting down...")


def create_app() -> FastAPI:
    """Application factory."""
    settings = get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Natural-language command agent for notes, reminders, todos and calendar",
        lifespan=lifespan,
    )

    # ── CORS ─────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Register Feature Routers ─────────────────────────
    app.include_router(agent_router, prefix="/api/agent", tags=["Agent"])
    app.include_router(integrations_router, prefix="/api/integrations", tags=["Integrations"])
    app.include_router(webhooks_router, prefix="/api/webhooks", tags=["Webhooks"])

    # ── Health Check ─────────────────────────────────────
    @app.get("/health", tags=["System"])
    async def health_check():
        return {
            "status": "healthy",
            "app": settings.APP_NAME,
            "version": settings.APP_VERSION,
        }

    return app


app = create_app()
