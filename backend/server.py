"""
Watchlist API server

Mounts the watchlist router under /api and owns the application
lifecycle (database check, indexes, client shutdown).
"""
from fastapi import FastAPI, APIRouter
from starlette.middleware.cors import CORSMiddleware
from datetime import datetime, timezone
import os
import logging

from watchlist import __version__
from watchlist.routes import watchlist_router, shutdown_watchlist_services

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Create the main app
app = FastAPI(title="Signalist Watchlist API")

api_router = APIRouter(prefix="/api")


@api_router.get("/")
async def root():
    return {"message": "Signalist Watchlist API", "version": __version__}


@api_router.get("/health")
async def health():
    return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}


api_router.include_router(watchlist_router)

app.include_router(api_router)

app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=[origin.strip() for origin in os.environ.get(
        'CORS_ORIGINS', 'http://localhost:3000').split(',')],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup():
    # Check database connection first - fail fast if database is unavailable
    from database import db, check_db_connection
    from services.db_indexes import create_all_indexes

    db_ok, db_error = await check_db_connection()
    if not db_ok:
        logger.critical(f"Database connection failed on startup: {db_error}")
        raise RuntimeError(
            f"Cannot start application - database connection failed: {db_error}")

    await create_all_indexes(db)
    logger.info("Watchlist API started")


@app.on_event("shutdown")
async def shutdown():
    await shutdown_watchlist_services()

    # Close MongoDB client
    from database import client
    client.close()
