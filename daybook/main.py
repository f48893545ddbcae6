"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from daybook.api import router as api_router
from daybook.core.config import get_settings
from daybook.core.indexing import get_indexing_queue


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Let detached embedding write-backs finish before the loop closes
    await get_indexing_queue().drain()


app = FastAPI(
    title="Daybook Assistant",
    description="Conversational action pipeline for tasks, notes, projects and habits",
    version="0.1.0",
    lifespan=lifespan,
)

# Auth is a bearer header; no cross-origin cookies
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().CORS_ALLOW_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "ok"}, status_code=200)


app.include_router(api_router)
