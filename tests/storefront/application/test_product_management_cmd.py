"""Application tests for catalogue stock administration."""

import json

import pytest
from protean import current_domain

from storefront.catalogue.management import (
    AdjustProductStock,
    RegisterProduct,
    SetProductOffers,
    SetProductStock,
)
from storefront.catalogue.product import Product
from storefront.concurrency import process
from storefront.errors import Forbidden, InsufficientStock, InvalidInput, ProductNotFound, Unauthorized

ADMIN = {"actor_id": "admin-001", "actor_role": "ADMIN"}
CUSTOMER = {"actor_id": "user-001", "actor_role": "CUSTOMER"}


def _register(**overrides):
    defaults = {"name": "Widget", "mrp": 100.0, "offers": json.dumps({"1": 0, "6": 10}), "stock": 10, **ADMIN}
    defaults.update(overrides)
    return process(RegisterProduct(**defaults))


def _product(product_id):
    return current_domain.repository_for(Product).get(product_id)


class TestRegisterProduct:
    def test_register(self):
        product = _product(_register(images=json.dumps(["a.jpg"])))
        assert product.name == "Widget"
        assert product.stock == 10
        assert product.primary_image == "a.jpg"
        assert product.unit_price_for(6) == 90.0

    def test_customer_is_forbidden(self):
        with pytest.raises(Forbidden):
            _register(**CUSTOMER)

    def test_missing_identity_is_unauthorized(self):
        with pytest.raises(Unauthorized):
            _register(actor_id="anon", actor_role="GUEST")

    def test_invalid_offers_rejected(self):
        with pytest.raises(InvalidInput):
            _register(offers=json.dumps({"1": 30, "6": 10}))


class TestSetProductOffers:
    def test_set_offers(self):
        product_id = _register()
        process(SetProductOffers(product_id=product_id, offers=json.dumps({"1": 0, "12": 20}), **ADMIN))
        assert _product(product_id).unit_price_for(12) == 80.0

    def test_unknown_product(self):
        with pytest.raises(ProductNotFound):
            process(SetProductOffers(product_id="missing", offers="{}", **ADMIN))


class TestStockAdministration:
    def test_adjust_up_and_down(self):
        product_id = _register(stock=10)
        assert process(AdjustProductStock(product_id=product_id, delta=5, **ADMIN)) == 15
        assert process(AdjustProductStock(product_id=product_id, delta=-15, **ADMIN)) == 0

    def test_adjust_below_zero_fails(self):
        product_id = _register(stock=2)
        with pytest.raises(InsufficientStock):
            process(AdjustProductStock(product_id=product_id, delta=-3, **ADMIN))
        assert _product(product_id).stock == 2

    def test_set_level(self):
        product_id = _register(stock=10)
        assert process(SetProductStock(product_id=product_id, stock=3, **ADMIN)) == 3

    def test_stop_and_restart_tracking(self):
        product_id = _register(stock=10)
        assert process(SetProductStock(product_id=product_id, untracked=True, **ADMIN)) is None
        assert _product(product_id).stock is None
        assert process(SetProductStock(product_id=product_id, stock=4, **ADMIN)) == 4

    def test_negative_level_rejected(self):
        product_id = _register(stock=None)
        with pytest.raises(InvalidInput):
            process(SetProductStock(product_id=product_id, stock=-1, **ADMIN))
