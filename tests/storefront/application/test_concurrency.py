"""Tests for optimistic-concurrency retries around command processing."""

import itertools
import threading

import pytest
from protean import current_domain
from protean.exceptions import ExpectedVersionError

from storefront import concurrency
from storefront.cart.cart import Cart
from storefront.cart.items import AddToCart
from storefront.catalogue.product import Product
from storefront.domain import storefront
from storefront.errors import ConcurrencyConflict, InsufficientStock
from storefront.inventory.ledger import StockLedger
from storefront.order.checkout import Checkout
from storefront.order.order import Order


class _FlakyDomain:
    """Stands in for the domain, losing the first ``conflicts`` races."""

    def __init__(self, conflicts):
        self.conflicts = conflicts
        self.calls = 0

    def process(self, command, asynchronous=True):
        self.calls += 1
        if self.calls <= self.conflicts:
            raise ExpectedVersionError("stale aggregate")
        return "done"


class TestProcessRetries:
    def test_retries_until_success(self, monkeypatch):
        domain = _FlakyDomain(conflicts=2)
        monkeypatch.setattr(concurrency, "current_domain", domain)

        assert concurrency.process(object(), retries=3) == "done"
        assert domain.calls == 3

    def test_gives_up_after_budget(self, monkeypatch):
        domain = _FlakyDomain(conflicts=10)
        monkeypatch.setattr(concurrency, "current_domain", domain)

        with pytest.raises(ConcurrencyConflict):
            concurrency.process(object(), retries=2)
        assert domain.calls == 3

    def test_budget_from_environment(self, monkeypatch):
        monkeypatch.setenv("STOREFRONT_CONFLICT_RETRIES", "1")
        assert concurrency.conflict_retries() == 1

        monkeypatch.setenv("STOREFRONT_CONFLICT_RETRIES", "lots")
        assert concurrency.conflict_retries() == concurrency.DEFAULT_RETRIES


class TestStaleWrites:
    def test_stale_product_copy_is_rejected(self, make_product):
        product_id = make_product(stock=1)
        repo = current_domain.repository_for(Product)
        first = repo.get(product_id)
        second = repo.get(product_id)

        first.adjust_stock(-1, reason="checkout")
        repo.add(first)

        second.adjust_stock(-1, reason="checkout")
        with pytest.raises(ExpectedVersionError):
            repo.add(second)
        assert repo.get(product_id).stock == 0


def _run_together(jobs):
    """Run each named job on its own thread, returning its result or exception."""
    results = {}

    def _run(name, job):
        with storefront.domain_context():
            try:
                results[name] = job()
            except Exception as exc:
                results[name] = exc

    threads = [threading.Thread(target=_run, args=item) for item in jobs.items()]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    return results


def _hold_first_calls(monkeypatch, owner, name, parties=2):
    """Make the first ``parties`` calls to ``owner.name`` wait for each other once they return."""
    barrier = threading.Barrier(parties, timeout=10)
    calls = itertools.count()
    original = getattr(owner, name)

    def _held(*args, **kwargs):
        result = original(*args, **kwargs)
        if next(calls) < parties:
            barrier.wait()
        return result

    monkeypatch.setattr(owner, name, _held)


class TestConcurrentRequests:
    def test_first_adds_for_one_user_share_a_cart(self, make_product, monkeypatch):
        widget = make_product(name="Widget")
        gadget = make_product(name="Gadget")
        _hold_first_calls(monkeypatch, type(current_domain.repository_for(Cart)), "open_for")

        results = _run_together(
            {
                "widget": lambda: concurrency.process(AddToCart(user_id="u", product_id=widget, quantity=1)),
                "gadget": lambda: concurrency.process(AddToCart(user_id="u", product_id=gadget, quantity=2)),
            }
        )
        assert not [r for r in results.values() if isinstance(r, Exception)]

        carts = current_domain.repository_for(Cart)._dao.query.filter(user_id="u").all().items
        assert len(carts) == 1
        assert sorted((str(i.product_id), i.quantity) for i in carts[0].items) == sorted(
            [(widget, 1), (gadget, 2)]
        )

    def test_last_unit_goes_to_exactly_one_checkout(self, make_product, monkeypatch):
        product_id = make_product(stock=1)
        for user_id in ("user-a", "user-b"):
            concurrency.process(AddToCart(user_id=user_id, product_id=product_id, quantity=1))
        # Both checkouts have read stock 1 before either debits it
        _hold_first_calls(monkeypatch, StockLedger, "ensure_available")

        def _checkout(user_id):
            return concurrency.process(
                Checkout(user_id=user_id, phone="9876543210", address="12 Market Road, Pune")
            )

        results = _run_together({user_id: lambda u=user_id: _checkout(u) for user_id in ("user-a", "user-b")})

        placed = [r for r in results.values() if isinstance(r, str)]
        rejected = [r for r in results.values() if isinstance(r, InsufficientStock)]
        assert len(placed) == 1
        assert len(rejected) == 1
        assert rejected[0].available == 0

        assert current_domain.repository_for(Product).get(product_id).stock == 0
        orders = current_domain.repository_for(Order)._dao.query.all().items
        assert [str(o.id) for o in orders] == placed

        carts = current_domain.repository_for(Cart)
        winner = str(orders[0].user_id)
        loser = "user-b" if winner == "user-a" else "user-a"
        assert len(carts.for_user(winner).items) == 0
        assert len(carts.for_user(loser).items) == 1
