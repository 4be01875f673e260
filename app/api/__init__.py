"""API router for v1 endpoints."""

from fastapi import APIRouter

from app.api import analysis, export, suggestions, writers

router = APIRouter()

# Writer surface: login, document, snapshots, change events
router.include_router(writers.router, tags=["writers"])

# Operator sends, writer outcomes
router.include_router(suggestions.router, tags=["suggestions"])

# CSV / ZIP downloads
router.include_router(export.router, tags=["export"])

# Typing-speed CSV analysis
router.include_router(analysis.router, tags=["analysis"])
