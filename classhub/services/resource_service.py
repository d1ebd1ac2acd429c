"""
Resource Service
Catalog of books, platforms and equipment with tiered pricing and stock
"""

import logging
from collections import Counter
from datetime import datetime
from typing import Dict, Any, List, Optional
from bson import ObjectId
from pymongo import ReturnDocument

from ..config.database import get_database, next_sequence
from ..config.settings import settings
from ..models.resource import ResourceCreate, PriceTier, StockStatus
from ..utils.exceptions import ConflictError
from ..utils.helpers import round_half_up, search_regex, paginate

logger = logging.getLogger(__name__)

TIER_PRICE_FIELDS = {
    PriceTier.SCHOOL: "school_bulk_price",
    PriceTier.TEACHER: "teacher_discount_price",
    PriceTier.STUDENT: "student_retail_price",
}

# ============================================================================
# PRICING AND STOCK
# ============================================================================

def stock_status(resource: Dict[str, Any]) -> str:
    inventory = resource.get("inventory") or {}
    available = inventory.get("available", 0) or 0
    if available <= 0:
        return StockStatus.OUT_OF_STOCK.value
    if available <= inventory.get("minimum_stock", settings.low_stock_threshold):
        return StockStatus.LOW_STOCK.value
    return StockStatus.IN_STOCK.value


def price_for_tier(resource: Dict[str, Any], tier: str) -> float:
    """Selling price for a customer tier (school, teacher or student)"""
    field = TIER_PRICE_FIELDS[PriceTier(tier)]
    return (resource.get("pricing") or {}).get(field, 0) or 0


def tier_margins(resource: Dict[str, Any]) -> Dict[str, float]:
    cost = (resource.get("pricing") or {}).get("cost_price", 0) or 0
    return {
        tier.value: round_half_up(price_for_tier(resource, tier.value) - cost, 2)
        for tier in PriceTier
    }


class ResourceService:
    """Service for resource catalog operations"""

    def get_db(self):
        """Get database instance"""
        return get_database()

    async def generate_resource_id(self) -> str:
        """Generate unique resource ID (RES-001, RES-002, etc.)"""
        sequence = await next_sequence("resource_id")
        return f"RES-{sequence:03d}"

    # ============================================================================
    # RESOURCE CRUD
    # ============================================================================

    async def create_resource(self, resource_data: ResourceCreate, created_by: str) -> Dict[str, Any]:
        db = self.get_db()

        try:
            resource_id = await self.generate_resource_id()
            resource_doc = {
                "_id": ObjectId(),
                "resource_id": resource_id,
                **resource_data.model_dump(mode="json"),
                "is_active": True,
                "created_by": created_by,
                "created_at": datetime.utcnow(),
                "updated_at": datetime.utcnow()
            }

            await db.resources.insert_one(resource_doc)
            logger.info(f"✅ Catalogued resource {resource_id} ({resource_data.name})")
            return resource_doc

        except Exception as e:
            logger.error(f"Error creating resource: {e}")
            raise

    async def get_resource(self, resource_id: str) -> Optional[Dict[str, Any]]:
        db = self.get_db()
        return await db.resources.find_one({"resource_id": resource_id})

    async def list_resources(
        self,
        filters: Dict[str, Any],
        page: int = 1,
        limit: int = 50
    ) -> Dict[str, Any]:
        """
        List resources with search and filters

        Args:
            filters: q, type, language, subject, publisher, stock_status,
                program_id, include_inactive
            page: Page number
            limit: Items per page
        """
        db = self.get_db()

        try:
            query: Dict[str, Any] = {}
            if not filters.get("include_inactive"):
                query["is_active"] = True

            for field in ("type", "language", "subject"):
                if filters.get(field):
                    query[field] = filters[field]

            if filters.get("program_id"):
                query["programs"] = filters["program_id"]

            conditions = []
            if filters.get("publisher"):
                publisher = filters["publisher"]
                conditions.append({"$or": [
                    {"publisher.french_publisher": publisher},
                    {"publisher.english_publisher": publisher}
                ]})

            if filters.get("q"):
                pattern = search_regex(filters["q"])
                conditions.append({"$or": [
                    {"name": pattern},
                    {"publisher.series": pattern},
                    {"publisher.french_publisher": pattern},
                    {"publisher.english_publisher": pattern}
                ]})

            if conditions:
                query["$and"] = conditions

            cursor = db.resources.find(query).sort("name", 1)
            resources = await cursor.to_list(length=None)

            # Stock status depends on two inventory fields
            if filters.get("stock_status"):
                resources = [
                    resource for resource in resources
                    if stock_status(resource) == filters["stock_status"]
                ]

            total = len(resources)
            skip = (page - 1) * limit

            return {
                "resources": resources[skip:skip + limit],
                "pagination": paginate(total, page, limit)
            }

        except Exception as e:
            logger.error(f"Error listing resources: {e}")
            raise

    async def update_resource(self, resource_id: str, update_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Merge fields into a resource

        Inventory fields are written one by one so unsent values survive.
        The stock check runs against the stored figures merged with the
        change, and the write only applies if those figures are unchanged.
        """
        db = self.get_db()

        try:
            query: Dict[str, Any] = {"resource_id": resource_id}
            inventory_change = {
                key: value
                for key, value in (update_data.pop("inventory", None) or {}).items()
                if value is not None
            }

            if inventory_change:
                resource = await db.resources.find_one({"resource_id": resource_id})
                if not resource:
                    return None

                stored = resource.get("inventory") or {}
                total_stock = inventory_change.get("total_stock", stored.get("total_stock", 0))
                available = inventory_change.get("available", stored.get("available", 0))
                if available > total_stock:
                    raise ValueError(
                        f"available ({available}) cannot exceed total_stock ({total_stock})"
                    )

                query["inventory.total_stock"] = stored.get("total_stock", 0)
                query["inventory.available"] = stored.get("available", 0)
                for key, value in inventory_change.items():
                    update_data[f"inventory.{key}"] = value

            update_data["updated_at"] = datetime.utcnow()

            result = await db.resources.find_one_and_update(
                query,
                {"$set": update_data},
                return_document=ReturnDocument.AFTER
            )

            if result is None and inventory_change:
                raise ConflictError(f"Stock for {resource_id} changed concurrently, reload and try again")

            if result:
                logger.info(f"✅ Updated resource {resource_id}")
            return result

        except Exception as e:
            logger.error(f"Error updating resource: {e}")
            raise

    async def delete_resource(self, resource_id: str) -> bool:
        """Soft delete"""
        db = self.get_db()
        result = await db.resources.update_one(
            {"resource_id": resource_id},
            {"$set": {"is_active": False, "updated_at": datetime.utcnow()}}
        )
        if result.matched_count:
            logger.info(f"✅ Deactivated resource {resource_id}")
        return result.matched_count > 0

    # ============================================================================
    # STOCK
    # ============================================================================

    async def adjust_stock(self, resource_id: str, delta: int, reason: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """
        Apply a signed stock change

        Removals only match while enough units are available, so available
        stock never drops below zero. Deliveries raise total_stock too.
        """
        db = self.get_db()

        resource = await db.resources.find_one({"resource_id": resource_id})
        if not resource:
            return None

        query: Dict[str, Any] = {"resource_id": resource_id}
        if delta < 0:
            query["inventory.available"] = {"$gte": -delta}
            increments = {"inventory.available": delta}
        else:
            increments = {"inventory.available": delta, "inventory.total_stock": delta}

        result = await db.resources.find_one_and_update(
            query,
            {
                "$inc": increments,
                "$set": {"updated_at": datetime.utcnow()},
                "$push": {"stock_history": {
                    "delta": delta,
                    "reason": reason,
                    "at": datetime.utcnow()
                }}
            },
            return_document=ReturnDocument.AFTER
        )

        if result is None:
            available = (resource.get("inventory") or {}).get("available", 0)
            logger.warning(f"⚠️ Stock adjustment {delta} rejected for {resource_id} ({available} available)")
            raise ValueError(f"Only {available} units of {resource_id} available")

        logger.info(f"✅ Stock for {resource_id} adjusted by {delta}")
        return result

    # ============================================================================
    # ANALYTICS
    # ============================================================================

    async def get_analytics(self) -> Dict[str, Any]:
        """Catalog summary: breakdowns, low stock and inventory value"""
        db = self.get_db()

        try:
            resources = await db.resources.find({"is_active": True}).to_list(length=None)

            by_type = Counter(resource.get("type") for resource in resources)
            by_language = Counter(resource.get("language") for resource in resources)
            by_publisher = Counter(
                (resource.get("publisher") or {}).get("french_publisher")
                or (resource.get("publisher") or {}).get("english_publisher")
                or "Unknown"
                for resource in resources
            )

            low_stock = [
                resource for resource in resources
                if stock_status(resource) != StockStatus.IN_STOCK.value
            ]

            value_at_cost = 0
            value_at_retail = 0
            for resource in resources:
                available = (resource.get("inventory") or {}).get("available", 0) or 0
                pricing = resource.get("pricing") or {}
                value_at_cost += available * (pricing.get("cost_price", 0) or 0)
                value_at_retail += available * (pricing.get("student_retail_price", 0) or 0)

            return {
                "total_resources": len(resources),
                "by_type": dict(by_type),
                "by_language": dict(by_language),
                "by_publisher": dict(by_publisher),
                "low_stock_count": len(low_stock),
                "low_stock_items": [
                    {
                        "resource_id": resource["resource_id"],
                        "name": resource["name"],
                        "available": (resource.get("inventory") or {}).get("available", 0),
                        "minimum_stock": (resource.get("inventory") or {}).get("minimum_stock", settings.low_stock_threshold),
                        "stock_status": stock_status(resource)
                    }
                    for resource in low_stock
                ],
                "inventory_value": {
                    "at_cost": round_half_up(value_at_cost, 2),
                    "at_retail": round_half_up(value_at_retail, 2),
                    "potential_margin": round_half_up(value_at_retail - value_at_cost, 2)
                }
            }

        except Exception as e:
            logger.error(f"Error building resource analytics: {e}")
            raise

# Singleton instance
resource_service = ResourceService()
