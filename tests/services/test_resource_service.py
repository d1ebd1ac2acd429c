"""
Service Tests for the resource catalog and stock
"""

import pytest

from classhub.models.resource import ResourceCreate
from classhub.services.resource_service import resource_service


def book(name="Alex et Zoé 1", total=10, minimum=5, **overrides):
    payload = {
        "name": name,
        "publisher": {"french_publisher": "CLE International", "series": "Alex et Zoé", "level": "A1"},
        "pricing": {
            "cost_price": 1800,
            "school_bulk_price": 2200,
            "teacher_discount_price": 2400,
            "student_retail_price": 2800,
        },
        "inventory": {"total_stock": total, "minimum_stock": minimum},
    }
    payload.update(overrides)
    return ResourceCreate(**payload)


class TestStock:

    @pytest.mark.asyncio
    async def test_removal_never_goes_negative(self, admin):
        resource = await resource_service.create_resource(book(total=3), created_by=str(admin["_id"]))

        updated = await resource_service.adjust_stock(resource["resource_id"], -2, "Sold to parent")
        assert updated["inventory"]["available"] == 1
        assert updated["inventory"]["total_stock"] == 3

        with pytest.raises(ValueError, match="Only 1 units"):
            await resource_service.adjust_stock(resource["resource_id"], -2)

        stored = await resource_service.get_resource(resource["resource_id"])
        assert stored["inventory"]["available"] == 1

    @pytest.mark.asyncio
    async def test_delivery_raises_total(self, admin):
        resource = await resource_service.create_resource(book(total=3), created_by=str(admin["_id"]))

        updated = await resource_service.adjust_stock(resource["resource_id"], 5, "Delivery")

        assert updated["inventory"]["available"] == 8
        assert updated["inventory"]["total_stock"] == 8
        assert updated["stock_history"][0]["delta"] == 5

    @pytest.mark.asyncio
    async def test_unknown_resource(self, db):
        assert await resource_service.adjust_stock("RES-404", 1) is None


class TestCatalog:

    @pytest.mark.asyncio
    async def test_search_and_filters(self, admin):
        await resource_service.create_resource(book(), created_by=str(admin["_id"]))
        await resource_service.create_resource(
            book(
                name="Oxford Reading Tree",
                language="English",
                subject="Reading",
                publisher={"english_publisher": "Oxford", "series": "ORT"},
                total=2
            ),
            created_by=str(admin["_id"])
        )

        by_series = await resource_service.list_resources({"q": "zoé"})
        assert [r["name"] for r in by_series["resources"]] == ["Alex et Zoé 1"]

        by_publisher = await resource_service.list_resources({"publisher": "Oxford"})
        assert [r["name"] for r in by_publisher["resources"]] == ["Oxford Reading Tree"]

        low = await resource_service.list_resources({"stock_status": "Low Stock"})
        assert [r["name"] for r in low["resources"]] == ["Oxford Reading Tree"]

        english = await resource_service.list_resources({"language": "English"})
        assert english["pagination"]["total"] == 1

    @pytest.mark.asyncio
    async def test_update_rejects_available_above_total(self, admin):
        resource = await resource_service.create_resource(book(), created_by=str(admin["_id"]))

        with pytest.raises(ValueError):
            await resource_service.update_resource(
                resource["resource_id"], {"inventory": {"total_stock": 2, "available": 3, "minimum_stock": 1}}
            )

    @pytest.mark.asyncio
    async def test_partial_inventory_update_keeps_stock(self, admin):
        resource = await resource_service.create_resource(book(total=10, minimum=3), created_by=str(admin["_id"]))
        await resource_service.adjust_stock(resource["resource_id"], -8, "Term orders")

        updated = await resource_service.update_resource(
            resource["resource_id"], {"inventory": {"total_stock": 12}}
        )

        assert updated["inventory"]["total_stock"] == 12
        assert updated["inventory"]["available"] == 2
        assert updated["inventory"]["minimum_stock"] == 3

        with pytest.raises(ValueError, match="cannot exceed"):
            await resource_service.update_resource(
                resource["resource_id"], {"inventory": {"total_stock": 1}}
            )

    @pytest.mark.asyncio
    async def test_analytics(self, admin):
        await resource_service.create_resource(book(total=10), created_by=str(admin["_id"]))
        await resource_service.create_resource(book(name="Alex et Zoé 2", total=0), created_by=str(admin["_id"]))

        analytics = await resource_service.get_analytics()

        assert analytics["total_resources"] == 2
        assert analytics["by_type"] == {"Book": 2}
        assert analytics["by_publisher"] == {"CLE International": 2}
        assert analytics["low_stock_count"] == 1
        assert analytics["low_stock_items"][0]["stock_status"] == "Out of Stock"
        assert analytics["inventory_value"] == {
            "at_cost": 18000,
            "at_retail": 28000,
            "potential_margin": 10000
        }
