"""
Sprouty API - Main application entry point.

Plant care companion: keep track of your plants and get reminded when they
need water, food, a trim or a bigger pot.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sprouty.core.config import get_settings
from sprouty.core.database import Database
from sprouty.core.logging import configure_logging
from sprouty.plants.views import router as plants_router
from sprouty.reminders.views import router as reminders_router

settings = get_settings()
API_PREFIX = "/api/v1"

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown events."""
    # Startup
    await Database.connect()
    yield
    # Shutdown
    await Database.disconnect()


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="""
## Sprouty API

Care reminders for your plant collection.

### Features

- 🌱 **Plant Collection**: Keep a list of the plants you look after
- ⏰ **Care Reminders**: One-off or recurring watering, fertilizing, pruning and repotting reminders
- 📬 **Notifications**: E-mail when a reminder comes due, plus a feed for in-app popups
    """,
    lifespan=lifespan,
    docs_url=f"{API_PREFIX}/docs",
    redoc_url=f"{API_PREFIX}/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
routers = [
    plants_router,
    reminders_router,
]

for router in routers:
    app.include_router(router, prefix=API_PREFIX)


@app.get("/", tags=["Health"])
async def root():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "database": "connected" if Database.client else "disconnected",
        "version": settings.APP_VERSION,
    }
