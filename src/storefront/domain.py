"""Storefront bounded context — catalogue stock, shopping carts and orders.

Products (stock counters and tiered offers), carts and orders live in one
domain so that checkout, cancellation and order edits can change all three
inside a single Unit of Work.
"""

from protean.domain import Domain

from storefront.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

storefront = Domain(name="storefront")
