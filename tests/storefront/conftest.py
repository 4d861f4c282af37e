import json

import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture

from storefront.catalogue.product import Product


@pytest.fixture(scope="session")
def storefront_bed():
    from storefront.domain import storefront

    bed = DomainFixture(storefront)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(storefront_bed):
    with storefront_bed.domain_context():
        yield


@pytest.fixture()
def make_product():
    """Persist a product directly, bypassing the admin commands."""

    def _make(name="Widget", mrp=100.0, offers=None, stock=10, images=None):
        product = Product.register(
            name=name,
            mrp=mrp,
            offers=json.dumps(offers) if offers is not None else None,
            images=images or [f"https://cdn.example.com/{name.lower()}.jpg"],
            stock=stock,
        )
        current_domain.repository_for(Product).add(product)
        return str(product.id)

    return _make


@pytest.fixture()
def stock_of():
    def _stock(product_id):
        return current_domain.repository_for(Product).get(product_id).stock

    return _stock
