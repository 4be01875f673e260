"""Export endpoints — CSV and ZIP downloads for offline analysis."""

from fastapi import APIRouter, HTTPException, Path, Query
from fastapi.responses import Response

from app.core.activity_report import load_user_activity
from app.core.csv_export import (
    build_snapshots_csv,
    build_summary_csv,
    build_user_csv,
    build_users_zip,
    dated_filename,
)
from app.core.logging import get_logger
from app.db import writing_snapshots as snapshots_db

logger = get_logger(__name__)

router = APIRouter(prefix="/export")

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"


def _download(content: str | bytes, media_type: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/users/{user_id}.csv")
async def export_user_csv(user_id: int = Path(..., description="Writer ID")) -> Response:
    """Detail CSV for one writer (documents × suggestions)."""
    try:
        activities = load_user_activity([user_id])
        if not activities:
            raise HTTPException(status_code=404, detail=f"Writer {user_id} not found")

        activity = activities[0]
        filename = dated_filename(f"user-{activity.user.get('name')}-detail", "csv")
        return _download(build_user_csv(activity), CSV_MEDIA_TYPE, filename)

    except HTTPException:
        raise
    except Exception as e:
        error_msg = f"Failed to export writer data: {str(e)}"
        logger.error(error_msg, extra={"user_id": user_id})
        raise HTTPException(status_code=500, detail=error_msg) from e


@router.get("/users/{user_id}/snapshots.csv")
async def export_snapshots_csv(user_id: int = Path(..., description="Writer ID")) -> Response:
    """Writing snapshots of one writer in capture order."""
    try:
        snapshots = snapshots_db.list_writing_snapshots(user_id)
        filename = dated_filename(f"user-{user_id}-snapshots", "csv")
        return _download(build_snapshots_csv(snapshots), CSV_MEDIA_TYPE, filename)

    except Exception as e:
        error_msg = f"Failed to export writing snapshots: {str(e)}"
        logger.error(error_msg, extra={"user_id": user_id})
        raise HTTPException(status_code=500, detail=error_msg) from e


@router.get("/summary.csv")
async def export_summary_csv() -> Response:
    """One summary row per writer."""
    try:
        activities = load_user_activity()
        if not activities:
            raise HTTPException(status_code=404, detail="No data to export")
        return _download(
            build_summary_csv(activities), CSV_MEDIA_TYPE, dated_filename("all-users-summary", "csv")
        )

    except HTTPException:
        raise
    except Exception as e:
        error_msg = f"Failed to export summary: {str(e)}"
        logger.error(error_msg)
        raise HTTPException(status_code=500, detail=error_msg) from e


@router.get("/users.zip")
async def export_users_zip(
    user_id: list[int] = Query(..., description="Writers to include (repeatable)"),
) -> Response:
    """ZIP with one detail CSV per selected writer."""
    try:
        activities = load_user_activity(user_id)
        if not activities:
            raise HTTPException(status_code=404, detail="None of the selected writers exist")

        filename = dated_filename(f"selected-users-{len(activities)}", "zip")
        return _download(build_users_zip(activities), "application/zip", filename)

    except HTTPException:
        raise
    except Exception as e:
        error_msg = f"Failed to export ZIP: {str(e)}"
        logger.error(error_msg)
        raise HTTPException(status_code=500, detail=error_msg) from e
