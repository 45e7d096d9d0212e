"""Unit tests for the order lifecycle transitions.

``set_status`` is the permissive administrative entry point; ``cancel``
is the guarded one.  Neither touches the database.
"""

from __future__ import annotations

import pytest

from modules.orders import state_machine
from modules.orders.constants import FULFILLED_STATES, OrderStatus
from modules.orders.exceptions import InvalidOrderStatus
from modules.orders.models import Order

pytestmark = pytest.mark.unit

CANCELLABLE = [OrderStatus.PENDING, OrderStatus.PAID, OrderStatus.PROCESSING]


def _order(status: str) -> Order:
    return Order(
        customer_name="FSM",
        customer_email="fsm@example.com",
        shipping_address="Somewhere 1",
        status=status,
    )


class TestParseStatus:
    def test_case_insensitive(self):
        assert state_machine.parse_status(" paid ") == OrderStatus.PAID

    def test_unknown_value_rejected(self):
        with pytest.raises(InvalidOrderStatus) as exc_info:
            state_machine.parse_status("REFUNDED", OrderStatus.PENDING)
        assert exc_info.value.current_status == OrderStatus.PENDING
        assert exc_info.value.operation == "set status"


class TestSetStatus:
    @pytest.mark.parametrize("target", list(OrderStatus))
    def test_any_enum_value_accepted_from_pending(self, target):
        order = _order(OrderStatus.PENDING)
        previous = state_machine.set_status(order, target)
        assert previous == OrderStatus.PENDING
        assert order.status == target

    @pytest.mark.parametrize("source", [OrderStatus.CANCELLED, OrderStatus.COMPLETED])
    def test_can_move_out_of_terminal_states(self, source):
        order = _order(source)
        state_machine.set_status(order, OrderStatus.PROCESSING)
        assert order.status == OrderStatus.PROCESSING

    def test_skipping_states_is_allowed(self):
        order = _order(OrderStatus.PENDING)
        state_machine.set_status(order, OrderStatus.DELIVERED)
        assert order.status == OrderStatus.DELIVERED

    def test_unknown_status_leaves_order_unchanged(self):
        order = _order(OrderStatus.PAID)
        with pytest.raises(InvalidOrderStatus):
            state_machine.set_status(order, "LOST")
        assert order.status == OrderStatus.PAID


class TestCancel:
    @pytest.mark.parametrize("source", CANCELLABLE)
    def test_cancellable_states(self, source):
        order = _order(source)
        assert state_machine.can_cancel(order)
        previous = state_machine.cancel(order)
        assert previous == source
        assert order.status == OrderStatus.CANCELLED

    @pytest.mark.parametrize("source", sorted(FULFILLED_STATES))
    def test_fulfilled_orders_cannot_be_cancelled(self, source):
        order = _order(source)
        assert not state_machine.can_cancel(order)
        with pytest.raises(InvalidOrderStatus, match="already fulfilled") as exc_info:
            state_machine.cancel(order)
        assert exc_info.value.current_status == source
        assert exc_info.value.operation == "cancel"
        assert order.status == source

    def test_cancelled_order_cannot_be_cancelled_again(self):
        order = _order(OrderStatus.CANCELLED)
        with pytest.raises(InvalidOrderStatus, match="already cancelled"):
            state_machine.cancel(order)
        assert order.status == OrderStatus.CANCELLED
