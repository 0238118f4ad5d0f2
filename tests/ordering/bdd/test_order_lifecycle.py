"""BDD tests for admin status changes, cancellation and shipment guards."""

from ordering.errors import ConflictError
from ordering.order.order import OrderStatus
from pytest_bdd import parsers, scenarios, when

scenarios("features/order_lifecycle.feature")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the admin sets the status to "{status}"'))
def admin_sets_status(order, status, error):
    try:
        order.update_status(OrderStatus(status), actor="admin")
    except ConflictError as exc:
        error["exc"] = exc


@when("the customer cancels the order")
def customer_cancels(order, error):
    try:
        order.cancel(actor="cust-bdd-001")
    except ConflictError as exc:
        error["exc"] = exc


@when(parsers.cfparse('a shipment is recorded with tracking number "{tracking_number}"'))
def shipment_recorded(order, tracking_number, error):
    try:
        order.record_shipment(carrier="UPS", tracking_number=tracking_number)
    except ConflictError as exc:
        error["exc"] = exc
