"""
Tests for Cart value type
"""

import json

import pytest

from storefront.cart import Cart
from storefront.cart.models import RemoteCartRecord


class TestCartMutations:
    """Tests for add/decrease/remove on Cart."""

    def test_add_creates_entry(self):
        cart = Cart().add("prod-1")
        assert cart.items == {"prod-1": 1}

    def test_add_is_additive(self):
        cart = Cart().add("prod-1", 1).add("prod-1", 1)
        assert cart.items == {"prod-1": 2}

    def test_add_does_not_mutate_original(self):
        original = Cart({"prod-1": 1})
        updated = original.add("prod-1", 3)

        assert original.items == {"prod-1": 1}
        assert updated.items == {"prod-1": 4}

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, True, "2"])
    def test_add_rejects_invalid_quantity(self, quantity):
        with pytest.raises(ValueError):
            Cart().add("prod-1", quantity)

    def test_add_rejects_empty_product_id(self):
        with pytest.raises(ValueError):
            Cart().add("", 1)

    def test_decrease_decrements(self):
        cart = Cart({"prod-1": 3}).decrease("prod-1")
        assert cart.items == {"prod-1": 2}

    def test_decrease_last_unit_removes_entry(self):
        cart = Cart({"prod-1": 1}).decrease("prod-1")
        assert cart.items == {}
        assert "prod-1" not in cart.items

    def test_decrease_missing_product_is_noop(self):
        cart = Cart({"prod-1": 2}).decrease("prod-2")
        assert cart.items == {"prod-1": 2}

    def test_remove_is_unconditional(self):
        cart = Cart({"prod-1": 5, "prod-2": 1}).remove("prod-1")
        assert cart.items == {"prod-2": 1}

    def test_no_zero_quantities_after_mixed_operations(self):
        cart = Cart()
        ops = [("add", "a"), ("add", "b"), ("dec", "a"), ("dec", "a"), ("add", "a"),
               ("dec", "b"), ("dec", "c"), ("add", "c"), ("add", "c"), ("dec", "c")]
        for op, pid in ops:
            cart = cart.add(pid) if op == "add" else cart.decrease(pid)
            assert all(q > 0 for q in cart.items.values())

        assert cart.items == {"a": 1, "c": 1}

    def test_total_items(self):
        assert Cart({"a": 2, "b": 3}).total_items == 5
        assert Cart().total_items == 0
        assert Cart().is_empty


class TestCartPayload:
    """Tests for device payload encoding."""

    def test_payload_is_json_object(self):
        payload = Cart({"b": 1, "a": 2}).to_payload()
        assert json.loads(payload) == {"a": 2, "b": 1}

    @pytest.mark.parametrize("payload", [None, "", "not json", "[1, 2]", "42", "null", '{"a": '])
    def test_bad_payload_is_empty_cart(self, payload):
        assert Cart.from_payload(payload).items == {}

    def test_from_dict_drops_invalid_quantities(self):
        cart = Cart.from_dict({"a": 2, "b": 0, "c": -1, "d": "3", "e": True, "f": 1.5})
        assert cart.items == {"a": 2}

    def test_from_payload_reads_stored_cart(self):
        assert Cart.from_payload('{"prod-1": 4}').items == {"prod-1": 4}


class TestRemoteCartRecord:
    """Tests for remote record shape checks."""

    def test_object_is_well_formed(self):
        record = RemoteCartRecord(user_id="u", cart_data={"a": 1})
        assert record.is_well_formed
        assert record.to_cart().items == {"a": 1}

    def test_empty_object_is_well_formed(self):
        assert RemoteCartRecord(user_id="u", cart_data={}).is_well_formed

    @pytest.mark.parametrize("data", [None, [], "cart", 3])
    def test_non_object_is_malformed(self, data):
        assert not RemoteCartRecord(user_id="u", cart_data=data).is_well_formed
