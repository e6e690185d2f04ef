"""Ordering bounded context: checkout, order finalization and fulfillment.

Turns a buyer's cart into a paid order, then rate-shops carriers and buys
shipping labels for it. Customers, products and shipments live in the same
domain so that an order and its first shipping transition commit together.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
