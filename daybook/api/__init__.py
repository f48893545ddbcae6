"""API router."""

from fastapi import APIRouter

from daybook.api import assistant

router = APIRouter()

router.include_router(assistant.router, tags=["assistant"])
