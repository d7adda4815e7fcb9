"""
Officer Portal - FastAPI Backend
Main application entry point with health check and API routing.
"""

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from config import settings, validate_security_settings
from database import Base, async_session_maker, engine
import models  # noqa: F401
from routers import (
    auth,
    capabilities,
    credits,
    health,
    lookups,
    officers,
    queries,
    rate_plans,
    registrations,
)
from services.accounts import ensure_bootstrap_admin


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    print("🚀 Starting Officer Portal API...")
    validate_security_settings()
    if settings.AUTO_CREATE_DB_SCHEMA:
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            print("🗄️ Database schema verified.")
        except (SQLAlchemyError, OSError) as e:
            print(f"⚠️ Database bootstrap skipped: {e}")
    try:
        async with async_session_maker() as session:
            if await ensure_bootstrap_admin(session):
                print(f"👮 Bootstrap administrator {settings.BOOTSTRAP_ADMIN_EMAIL} created.")
    except (SQLAlchemyError, OSError) as exc:
        print(f"⚠️ Bootstrap administrator skipped: {exc}")

    app.state.vendor_client = httpx.AsyncClient()
    yield
    # Shutdown
    await app.state.vendor_client.aclose()
    await engine.dispose()
    print("👋 Shutting down API...")


app = FastAPI(
    title="Officer Portal API",
    description="Credit-metered identity, vehicle and phone lookups for law-enforcement officers",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(lookups.router, prefix="/lookups", tags=["Lookups"])
app.include_router(credits.router, prefix="/credits", tags=["Credits"])
app.include_router(queries.router, tags=["Queries"])
app.include_router(officers.router, prefix="/admin/officers", tags=["Officers"])
app.include_router(rate_plans.router, prefix="/admin/rate-plans", tags=["Rate Plans"])
app.include_router(capabilities.router, prefix="/admin/capabilities", tags=["Capabilities"])
app.include_router(registrations.router, prefix="/registrations", tags=["Registrations"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Officer Portal API",
        "version": "0.1.0",
        "status": "running"
    }
