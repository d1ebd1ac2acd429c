"""
Unit Tests for resource pricing and stock status
"""

import pytest

from classhub.services.resource_service import stock_status, price_for_tier, tier_margins

BOOK = {
    "name": "Alex et Zoé 1",
    "pricing": {
        "cost_price": 1800,
        "school_bulk_price": 2200,
        "teacher_discount_price": 2400,
        "student_retail_price": 2800,
    },
    "inventory": {"total_stock": 40, "available": 40, "minimum_stock": 5},
}


@pytest.mark.parametrize("tier, price", [
    ("school", 2200),
    ("teacher", 2400),
    ("student", 2800),
])
def test_price_for_tier(tier, price):
    assert price_for_tier(BOOK, tier) == price


def test_unknown_tier():
    with pytest.raises(ValueError):
        price_for_tier(BOOK, "wholesale")


def test_margins():
    assert tier_margins(BOOK) == {"school": 400, "teacher": 600, "student": 1000}


@pytest.mark.parametrize("available, expected", [
    (0, "Out of Stock"),
    (1, "Low Stock"),
    (5, "Low Stock"),
    (6, "In Stock"),
])
def test_stock_status(available, expected):
    resource = {"inventory": {"total_stock": 40, "available": available, "minimum_stock": 5}}

    assert stock_status(resource) == expected


def test_stock_status_without_inventory():
    assert stock_status({}) == "Out of Stock"
