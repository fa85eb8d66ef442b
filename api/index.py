"""
Storefront Cart API - Main FastAPI Application

Single entry point for the cart endpoints (Vercel serverless function).
"""
import asyncio
import sys
from pathlib import Path
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Repo root on sys.path for Vercel, which runs this file directly
_base_path = Path(__file__).parent.parent
if str(_base_path) not in sys.path:
    sys.path.insert(0, str(_base_path))

from storefront import config
from storefront.cart import SupabaseCartStore, get_task_runner
from storefront.logging import get_logger
from storefront.routers import router as api_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    # Pushes spawned from worker threads run on this loop
    get_task_runner().bind(asyncio.get_running_loop())

    # Startup: report whether the remote cart replica is usable
    if config.USE_API_STORAGE:
        available = await SupabaseCartStore().probe()
        logger.info(f"Remote cart storage {'available' if available else 'unavailable, device-only mode'}")
    yield
    # Shutdown: let in-flight remote pushes finish
    await get_task_runner().drain()


app = FastAPI(
    title="Storefront Cart API",
    description="Device cart with Supabase replication",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/api/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok", "service": "storefront-cart", "remote_storage": config.USE_API_STORAGE}
