"""
Resource API Routes
Catalog, tiered pricing, stock adjustments and catalog analytics
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import Dict, Any, Optional
import logging

from ..models.resource import (
    ResourceCreate,
    ResourceUpdate,
    ResourceType,
    ResourceLanguage,
    ResourceSubject,
    PriceTier,
    StockStatus,
    StockAdjustment
)
from ..services.resource_service import (
    resource_service,
    stock_status,
    price_for_tier,
    tier_margins
)
from ..utils.dependencies import get_current_active_user, require_admin
from ..utils.exceptions import ConflictError
from ..utils.helpers import convert_objectid_to_str, to_iso

router = APIRouter(prefix="/resources", tags=["Resources"])
logger = logging.getLogger(__name__)


# =====================================
# HELPER FUNCTIONS
# =====================================

def format_resource_response(resource_doc: Dict[str, Any], tier: Optional[PriceTier] = None) -> Dict[str, Any]:
    """Resource document with stock status, margins and optionally a tier price"""
    data = convert_objectid_to_str({
        k: v for k, v in resource_doc.items() if k not in ("_id", "stock_history")
    })
    data["id"] = str(resource_doc["_id"])
    data["created_at"] = to_iso(resource_doc.get("created_at"))
    data["updated_at"] = to_iso(resource_doc.get("updated_at"))
    data["stock_status"] = stock_status(resource_doc)
    data["margins"] = tier_margins(resource_doc)
    if tier:
        data["tier"] = tier.value
        data["price"] = price_for_tier(resource_doc, tier.value)
    return data


# =====================================
# RESOURCE CRUD
# =====================================

@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_resource(
    resource_data: ResourceCreate,
    current_user: Dict[str, Any] = Depends(require_admin)
):
    try:
        resource_doc = await resource_service.create_resource(resource_data, created_by=current_user["_id"])
        return {
            "success": True,
            "message": f"Resource '{resource_doc['name']}' added",
            "data": format_resource_response(resource_doc)
        }

    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Error creating resource: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create resource: {str(e)}"
        )


@router.get("/")
async def list_resources(
    q: Optional[str] = Query(None, description="Search name, series and publisher"),
    type: Optional[ResourceType] = None,
    language: Optional[ResourceLanguage] = None,
    subject: Optional[ResourceSubject] = None,
    publisher: Optional[str] = None,
    stock: Optional[StockStatus] = Query(None, alias="stock_status"),
    program_id: Optional[str] = None,
    tier: Optional[PriceTier] = Query(None, description="Include the price for this customer tier"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    current_user: Dict[str, Any] = Depends(get_current_active_user)
):
    try:
        filters = {
            "q": q,
            "type": type.value if type else None,
            "language": language.value if language else None,
            "subject": subject.value if subject else None,
            "publisher": publisher,
            "stock_status": stock.value if stock else None,
            "program_id": program_id
        }

        result = await resource_service.list_resources(filters, page, limit)

        return {
            "success": True,
            "data": [format_resource_response(resource, tier) for resource in result["resources"]],
            "pagination": result["pagination"]
        }

    except Exception as e:
        logger.error(f"Error listing resources: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to list resources: {str(e)}"
        )


@router.get("/analytics")
async def get_resource_analytics(current_user: Dict[str, Any] = Depends(require_admin)):
    try:
        analytics = await resource_service.get_analytics()
        return {"success": True, "data": analytics}

    except Exception as e:
        logger.error(f"Error getting resource analytics: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get resource analytics: {str(e)}"
        )


@router.get("/{resource_id}")
async def get_resource(
    resource_id: str,
    tier: Optional[PriceTier] = None,
    current_user: Dict[str, Any] = Depends(get_current_active_user)
):
    try:
        resource = await resource_service.get_resource(resource_id)
        if not resource:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Resource {resource_id} not found"
            )

        return {"success": True, "data": format_resource_response(resource, tier)}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting resource: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get resource: {str(e)}"
        )


@router.put("/{resource_id}")
async def update_resource(
    resource_id: str,
    update_data: ResourceUpdate,
    current_user: Dict[str, Any] = Depends(require_admin)
):
    try:
        update_dict = update_data.model_dump(mode="json", exclude_unset=True)
        if not update_dict:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No fields to update"
            )

        resource = await resource_service.update_resource(resource_id, update_dict)
        if not resource:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Resource {resource_id} not found"
            )

        return {
            "success": True,
            "message": "Resource updated",
            "data": format_resource_response(resource)
        }

    except HTTPException:
        raise
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating resource: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update resource: {str(e)}"
        )


@router.delete("/{resource_id}")
async def delete_resource(
    resource_id: str,
    current_user: Dict[str, Any] = Depends(require_admin)
):
    try:
        deleted = await resource_service.delete_resource(resource_id)
        if not deleted:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Resource {resource_id} not found"
            )

        return {"success": True, "message": f"Resource {resource_id} deactivated"}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting resource: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete resource: {str(e)}"
        )


# =====================================
# STOCK
# =====================================

@router.post("/{resource_id}/stock")
async def adjust_stock(
    resource_id: str,
    adjustment: StockAdjustment,
    current_user: Dict[str, Any] = Depends(require_admin)
):
    """Add delivered units or remove sold/lost ones"""
    try:
        resource = await resource_service.adjust_stock(resource_id, adjustment.delta, adjustment.reason)
        if not resource:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Resource {resource_id} not found"
            )

        return {
            "success": True,
            "message": f"Stock adjusted by {adjustment.delta}",
            "data": format_resource_response(resource)
        }

    except HTTPException:
        raise
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        logger.error(f"Error adjusting stock: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to adjust stock: {str(e)}"
        )
