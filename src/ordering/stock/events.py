"""Domain events for the Product aggregate and its stock ledger."""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Product")
class ProductRegistered:
    """A product was added to the catalogue with its opening stock."""

    __version__ = 1

    product_id = Identifier(required=True)
    name = String(required=True, sanitize=False)
    sku = String(sanitize=False)
    price = Float(required=True)
    size_stocks = Text(sanitize=False)  # JSON map, empty for sizeless products
    total_stock = Integer(required=True)
    registered_at = DateTime(required=True)


@ordering.event(part_of="Product")
class StockLedgerUpdated:
    """An admin edit replaced or adjusted the product's stock."""

    __version__ = 1

    product_id = Identifier(required=True)
    size_stocks = Text(sanitize=False)
    total_stock = Integer(required=True)
    reason = String(required=True, sanitize=False)  # "replaced", "adjusted", "set"
    updated_at = DateTime(required=True)


@ordering.event(part_of="Product")
class StockCommitted:
    """Stock was taken out of the ledger for a placed order."""

    __version__ = 1

    product_id = Identifier(required=True)
    size = String(sanitize=False)
    quantity = Integer(required=True)
    remaining = Integer(required=True)
    order_id = Identifier()
    committed_at = DateTime(required=True)


@ordering.event(part_of="Product")
class StockRestored:
    """Stock returned to the ledger after an order was cancelled."""

    __version__ = 1

    product_id = Identifier(required=True)
    size = String(sanitize=False)
    quantity = Integer(required=True)
    remaining = Integer(required=True)
    order_id = Identifier()
    restored_at = DateTime(required=True)


@ordering.event(part_of="Product")
class PriceChanged:
    __version__ = 1

    product_id = Identifier(required=True)
    previous_price = Float(required=True)
    new_price = Float(required=True)
    changed_at = DateTime(required=True)
