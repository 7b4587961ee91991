"""Unit tests for the order lifecycle state machine.

Covers:
- Successor sets, including the optional ACCEPTED -> ASSIGNED edge.
- Role checks per edge and the assigned-courier check.
- Cancellation rules per role.
- History, outbox and in-process events written by a transition.
"""

from __future__ import annotations

import pytest

from modules.core.models import OutboxEvent
from modules.orders.constants import TERMINAL_STATES, ActorRole, OrderStatus
from modules.orders.events import OrderCancelled, OrderStatusChanged
from modules.orders.exceptions import InvalidOrderStatus, TransitionForbidden
from modules.orders.models import OrderStatusHistory
from modules.orders.repositories import OrderDjangoRepository
from modules.orders.state_machine import SYSTEM_ACTOR, Actor, OrderStateMachine
from shared.infrastructure.bus import InMemoryEventBus

pytestmark = pytest.mark.unit

VENDOR = Actor(ActorRole.VENDOR, "v-1")
ADMIN = Actor(ActorRole.ADMIN, "a-1")
CUSTOMER = Actor(ActorRole.CUSTOMER, "c-1")
COURIER = Actor(ActorRole.COURIER, "k-1")


class RecordingHandler:
    def __init__(self) -> None:
        self.events = []

    def handle(self, event) -> None:
        self.events.append(event)


@pytest.fixture()
def bus():
    return InMemoryEventBus()


@pytest.fixture()
def machine(bus):
    return OrderStateMachine(OrderDjangoRepository(), bus)


class TestSuccessors:
    def test_forward_chain(self, machine):
        chain = [
            OrderStatus.PLACED,
            OrderStatus.ACCEPTED,
            OrderStatus.READY,
            OrderStatus.ASSIGNED,
            OrderStatus.EN_ROUTE_TO_PICKUP,
            OrderStatus.PICKED_UP,
            OrderStatus.OUT_FOR_DELIVERY,
            OrderStatus.DELIVERED,
        ]
        for current, nxt in zip(chain, chain[1:]):
            assert machine.can_transition(current, nxt)

    @pytest.mark.parametrize("status", sorted(TERMINAL_STATES))
    def test_terminal_states_have_no_successors(self, machine, status):
        assert machine.successors(status) == set()

    def test_every_non_terminal_status_can_be_cancelled(self, machine):
        for status in OrderStatus.values:
            if status not in TERMINAL_STATES:
                assert OrderStatus.CANCELLED in machine.successors(status)

    def test_skipping_and_going_back_are_not_allowed(self, machine):
        assert not machine.can_transition(OrderStatus.PLACED, OrderStatus.READY)
        assert not machine.can_transition(OrderStatus.PICKED_UP, OrderStatus.ASSIGNED)

    def test_early_dispatch_edge_only_when_enabled(self, bus):
        default = OrderStateMachine(OrderDjangoRepository(), bus)
        early = OrderStateMachine(OrderDjangoRepository(), bus, allow_early_dispatch=True)
        assert not default.can_transition(OrderStatus.ACCEPTED, OrderStatus.ASSIGNED)
        assert early.can_transition(OrderStatus.ACCEPTED, OrderStatus.ASSIGNED)


class TestCheck:
    def test_vendor_moves_placed_to_accepted(self, machine, make_order):
        order = make_order(status=OrderStatus.PLACED)
        machine.check(order, OrderStatus.ACCEPTED, VENDOR)

    def test_customer_cannot_accept(self, machine, make_order):
        order = make_order(status=OrderStatus.PLACED)
        with pytest.raises(TransitionForbidden):
            machine.check(order, OrderStatus.ACCEPTED, CUSTOMER)

    def test_vendor_cannot_assign(self, machine, make_order):
        order = make_order(status=OrderStatus.READY)
        with pytest.raises(TransitionForbidden):
            machine.check(order, OrderStatus.ASSIGNED, VENDOR)

    def test_system_and_admin_can_assign(self, machine, make_order):
        order = make_order(status=OrderStatus.READY)
        machine.check(order, OrderStatus.ASSIGNED, SYSTEM_ACTOR)
        machine.check(order, OrderStatus.ASSIGNED, ADMIN)

    def test_courier_edges_require_the_assigned_courier(self, machine, make_order):
        order = make_order(status=OrderStatus.ASSIGNED)
        machine.check(
            order, OrderStatus.EN_ROUTE_TO_PICKUP, COURIER, assigned_courier_id="k-1"
        )
        with pytest.raises(TransitionForbidden):
            machine.check(
                order, OrderStatus.EN_ROUTE_TO_PICKUP, COURIER, assigned_courier_id="k-2"
            )
        with pytest.raises(TransitionForbidden):
            machine.check(order, OrderStatus.EN_ROUTE_TO_PICKUP, COURIER)

    def test_admin_cannot_drive_courier_edges(self, machine, make_order):
        order = make_order(status=OrderStatus.ASSIGNED)
        with pytest.raises(TransitionForbidden):
            machine.check(order, OrderStatus.EN_ROUTE_TO_PICKUP, ADMIN)

    def test_invalid_edge_is_reported_before_permissions(self, machine, make_order):
        order = make_order(status=OrderStatus.PLACED)
        with pytest.raises(InvalidOrderStatus):
            machine.check(order, OrderStatus.DELIVERED, CUSTOMER)

    @pytest.mark.parametrize(
        "actor,status,allowed",
        [
            (CUSTOMER, OrderStatus.PLACED, True),
            (CUSTOMER, OrderStatus.ACCEPTED, False),
            (VENDOR, OrderStatus.READY, True),
            (VENDOR, OrderStatus.ASSIGNED, False),
            (ADMIN, OrderStatus.OUT_FOR_DELIVERY, True),
            (COURIER, OrderStatus.PICKED_UP, False),
        ],
    )
    def test_cancellation_rules(self, machine, make_order, actor, status, allowed):
        order = make_order(status=status)
        if allowed:
            machine.check(order, OrderStatus.CANCELLED, actor)
        else:
            with pytest.raises(TransitionForbidden):
                machine.check(order, OrderStatus.CANCELLED, actor)

    def test_terminal_orders_cannot_be_cancelled(self, machine, make_order):
        order = make_order(status=OrderStatus.DELIVERED)
        with pytest.raises(InvalidOrderStatus):
            machine.check(order, OrderStatus.CANCELLED, ADMIN)


class TestTransition:
    def test_writes_status_history_outbox_and_publishes(self, machine, bus, make_order):
        handler = RecordingHandler()
        bus.subscribe(OrderStatusChanged, handler)
        order = make_order(status=OrderStatus.PLACED)

        machine.transition(order, OrderStatus.ACCEPTED, VENDOR, notes="ok")

        order.refresh_from_db()
        assert order.status == OrderStatus.ACCEPTED
        history = OrderStatusHistory.objects.get(order=order)
        assert history.old_status == OrderStatus.PLACED
        assert history.new_status == OrderStatus.ACCEPTED
        assert history.actor_role == ActorRole.VENDOR
        assert history.actor_id == "v-1"
        assert OutboxEvent.objects.filter(
            aggregate_id=str(order.id), event_type="OrderStatusChanged", topic="orders"
        ).exists()
        assert [e.new_status for e in handler.events] == [OrderStatus.ACCEPTED]

    def test_cancel_publishes_order_cancelled(self, machine, bus, make_order):
        handler = RecordingHandler()
        bus.subscribe(OrderCancelled, handler)
        order = make_order(status=OrderStatus.READY)

        machine.transition(order, OrderStatus.CANCELLED, VENDOR)

        assert len(handler.events) == 1
        assert handler.events[0].old_status == OrderStatus.READY

    def test_rejected_transition_changes_nothing(self, machine, make_order):
        order = make_order(status=OrderStatus.PLACED)
        with pytest.raises(InvalidOrderStatus):
            machine.transition(order, OrderStatus.PICKED_UP, ADMIN)
        order.refresh_from_db()
        assert order.status == OrderStatus.PLACED
        assert not OrderStatusHistory.objects.filter(order=order).exists()

    def test_system_transitions_have_empty_actor_id(self, machine, make_order):
        order = make_order(status=OrderStatus.READY)
        machine.transition(order, OrderStatus.ASSIGNED, SYSTEM_ACTOR)
        history = OrderStatusHistory.objects.get(order=order)
        assert history.actor_role == ActorRole.SYSTEM
        assert history.actor_id == ""
