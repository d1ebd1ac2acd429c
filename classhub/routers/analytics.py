"""
Analytics API Routes
"""

from fastapi import APIRouter, Depends, HTTPException, status
from typing import Dict, Any
import logging

from ..services.analytics_service import analytics_service
from ..utils.dependencies import require_admin

router = APIRouter(prefix="/analytics", tags=["Analytics"])
logger = logging.getLogger(__name__)


@router.get("/overview")
async def get_overview(current_user: Dict[str, Any] = Depends(require_admin)):
    """Enrollment, revenue, session and attendance headline figures"""
    try:
        overview = await analytics_service.get_overview()
        return {"success": True, "data": overview}

    except Exception as e:
        logger.error(f"Error getting analytics overview: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get analytics overview: {str(e)}"
        )
