"""Tests for priced cart summaries"""
from decimal import Decimal

import pytest
from unittest.mock import Mock

from storefront.cart import Cart, build_cart_summary, fetch_cart_products
from storefront.money import apply_discount, round_money, to_decimal


@pytest.fixture
def sample_products():
    """Catalog rows as returned by the products table"""
    return [
        {"id": "prod-1", "name": "Drill", "price": 1000.0, "discount_percentage": 10, "image_url": "drill.png"},
        {"id": "prod-2", "name": "Hammer", "price": 250.0, "discount_percentage": None},
        {"id": "prod-3", "name": "Saw", "price": 499.99},
    ]


class TestMoney:

    def test_to_decimal_from_float(self):
        assert to_decimal(0.1) == Decimal("0.1")

    def test_to_decimal_invalid(self):
        assert to_decimal("abc") == Decimal("0")
        assert to_decimal(None) == Decimal("0")

    def test_apply_discount(self):
        assert apply_discount(1000, 10) == Decimal("900")
        assert apply_discount(1000, None) == Decimal("1000")

    def test_apply_discount_clamped(self):
        assert apply_discount(100, 150) == Decimal("0")
        assert apply_discount(100, -5) == Decimal("100")

    def test_round_money(self):
        assert round_money("10.005") == Decimal("10.01")
        assert round_money("10.5") == Decimal("10.50")


class TestBuildCartSummary:

    def test_totals(self, sample_products):
        cart = Cart({"prod-1": 2, "prod-2": 1})

        summary = build_cart_summary(cart, sample_products)

        assert summary.total_items == 3
        assert summary.subtotal == Decimal("2250")
        assert summary.total == Decimal("2050")
        assert summary.savings == Decimal("200")

    def test_line_pricing(self, sample_products):
        summary = build_cart_summary(Cart({"prod-1": 3}), sample_products)
        line = summary.lines[0]

        assert line.name == "Drill"
        assert line.final_price == Decimal("900")
        assert line.total_price == Decimal("2700")
        assert line.image_url == "drill.png"

    def test_missing_products_excluded(self, sample_products):
        summary = build_cart_summary(Cart({"prod-3": 1, "gone": 4}), sample_products)

        assert summary.missing_product_ids == ["gone"]
        assert summary.total_items == 1
        assert summary.total == Decimal("499.99")

    def test_to_dict_keeps_kopecks(self, sample_products):
        data = build_cart_summary(Cart({"prod-3": 3}), sample_products).to_dict()

        assert data["total"] == 1499.97
        assert data["items"][0]["final_price"] == 499.99

    def test_empty_cart(self, sample_products):
        summary = build_cart_summary(Cart(), sample_products)

        assert summary.is_empty
        assert summary.to_dict()["total"] == 0.0

    def test_to_dict(self, sample_products):
        data = build_cart_summary(Cart({"prod-1": 1}), sample_products).to_dict()

        assert data["total_items"] == 1
        assert data["total"] == 900.0
        assert data["items"][0]["final_price"] == 900.0
        assert data["items"][0]["discount_percent"] == 10.0


class TestFetchCartProducts:

    @pytest.mark.asyncio
    async def test_single_in_query(self, mock_supabase_client, sample_products):
        table = mock_supabase_client.table.return_value
        table.execute.return_value = Mock(data=sample_products[:2])

        rows = await fetch_cart_products(mock_supabase_client, ["prod-2", "prod-1", "prod-1"])

        assert len(rows) == 2
        table.in_.assert_called_once_with("id", ["prod-1", "prod-2"])

    @pytest.mark.asyncio
    async def test_no_ids_skips_query(self, mock_supabase_client):
        assert await fetch_cart_products(mock_supabase_client, []) == []
        mock_supabase_client.table.assert_not_called()

    @pytest.mark.asyncio
    async def test_failure_yields_empty_catalog(self, mock_supabase_client):
        mock_supabase_client.table.return_value.execute.side_effect = RuntimeError("down")
        assert await fetch_cart_products(mock_supabase_client, ["prod-1"]) == []
