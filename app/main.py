"""FastAPI application entry point."""

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from app.api import completions
from app.api import router as api_router

app = FastAPI(
    title="WoZ Writing Assistant",
    description="Wizard-of-Oz writing study: live suggestions, LLM drafting and data export",
    version="0.1.0",
)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "ok"}, status_code=200)


# Completion proxy keeps its original unprefixed paths
app.include_router(completions.router, tags=["completions"])

# Include v1 API router
app.include_router(api_router, prefix="/v1", tags=["v1"])
