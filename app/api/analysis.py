"""Typing-speed analysis of uploaded CSV logs."""

from dataclasses import asdict

from fastapi import APIRouter, File, HTTPException, UploadFile

from app.core.logging import get_logger
from app.core.typing_speed_import import (
    TypingSpeedImportError,
    parse_speed_csv,
    sample_for_chart,
    summarize,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/analysis")


@router.post("/typing-speed")
async def analyze_typing_speed(file: UploadFile = File(...)) -> dict:
    """
    Parse a typing-speed CSV and return summary stats plus chart points.

    Raises:
        HTTPException 400: If the file is not UTF-8 or lacks timestamp/speed columns
    """
    try:
        raw = await file.read()
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise TypingSpeedImportError("CSV file must be UTF-8 encoded") from e

        records = parse_speed_csv(text)
        return {
            "stats": asdict(summarize(records)),
            "points": [asdict(r) for r in sample_for_chart(records)],
        }

    except TypingSpeedImportError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except Exception as e:
        error_msg = f"Failed to analyze typing speed: {str(e)}"
        logger.error(error_msg, extra={"extra_data": {"upload": file.filename}})
        raise HTTPException(status_code=500, detail=error_msg) from e
