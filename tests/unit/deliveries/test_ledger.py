"""Unit tests for the delivery request ledger."""

from __future__ import annotations

from decimal import Decimal

import pytest

from modules.deliveries.constants import DeliveryRequestStatus
from modules.deliveries.exceptions import DeliveryRequestNotFound, OfferAlreadyResolved
from modules.deliveries.models import DeliveryRequest

pytestmark = pytest.mark.unit


class TestCreate:
    def test_attempt_numbers_increase_per_order(self, ledger, make_order, make_courier):
        order = make_order()
        other = make_order()
        a, b = make_courier(), make_courier()

        first = ledger.create_offer(order, a, 15, distance_km=1.0)
        second = ledger.create_offer(order, b, 15, distance_km=2.0)
        unrelated = ledger.create_offer(other, a, 15)

        assert (first.attempt_number, second.attempt_number) == (1, 2)
        assert unrelated.attempt_number == 1

    def test_offer_expires_after_ttl(self, ledger, clock, make_order, make_courier):
        request = ledger.create_offer(make_order(), make_courier(), 15)
        assert (request.expires_at - clock()).total_seconds() == 15
        assert request.is_exclusive
        assert request.status == DeliveryRequestStatus.PENDING

    def test_broadcast_shares_one_deadline(self, ledger, make_order, make_courier):
        order = make_order()
        couriers = [(make_courier(), 1.0), (make_courier(), 2.0), (make_courier(), 3.0)]

        requests = ledger.create_broadcast(order, couriers, 300)

        assert [r.attempt_number for r in requests] == [1, 2, 3]
        assert len({r.expires_at for r in requests}) == 1
        assert not any(r.is_exclusive for r in requests)


class TestMarkResponded:
    def test_accept_sets_status_and_time(self, ledger, clock, make_order, make_courier):
        request = ledger.create_offer(make_order(), make_courier(), 15)
        clock.advance(5)

        resolved = ledger.mark_responded(str(request.id), DeliveryRequestStatus.ACCEPTED)

        assert resolved.status == DeliveryRequestStatus.ACCEPTED
        assert resolved.responded_at == clock()

    def test_second_response_is_refused(self, ledger, make_order, make_courier):
        request = ledger.create_offer(make_order(), make_courier(), 15)
        ledger.mark_responded(str(request.id), DeliveryRequestStatus.REJECTED)
        with pytest.raises(OfferAlreadyResolved):
            ledger.mark_responded(str(request.id), DeliveryRequestStatus.ACCEPTED)

    def test_response_after_deadline_expires_the_offer(
        self, ledger, clock, make_order, make_courier
    ):
        request = ledger.create_offer(make_order(), make_courier(), 15)
        clock.advance(15)

        resolved = ledger.mark_responded(str(request.id), DeliveryRequestStatus.ACCEPTED)

        assert resolved.status == DeliveryRequestStatus.EXPIRED
        assert resolved.responded_at is None

    def test_only_one_accepted_request_per_order(self, ledger, make_order, make_courier):
        order = make_order()
        requests = ledger.create_broadcast(order, [(make_courier(), 1.0), (make_courier(), 2.0)], 300)
        ledger.mark_responded(str(requests[0].id), DeliveryRequestStatus.ACCEPTED)

        with pytest.raises(OfferAlreadyResolved):
            ledger.mark_responded(str(requests[1].id), DeliveryRequestStatus.ACCEPTED)
        assert DeliveryRequest.objects.filter(
            order=order, status=DeliveryRequestStatus.ACCEPTED
        ).count() == 1

    def test_unknown_request(self, ledger):
        with pytest.raises(DeliveryRequestNotFound):
            ledger.mark_responded(
                "00000000-0000-0000-0000-000000000000", DeliveryRequestStatus.ACCEPTED
            )

    def test_unsupported_outcome(self, ledger, make_order, make_courier):
        request = ledger.create_offer(make_order(), make_courier(), 15)
        with pytest.raises(ValueError):
            ledger.mark_responded(str(request.id), DeliveryRequestStatus.EXPIRED)


class TestExpiryAndSupersede:
    def test_expire_stale_returns_affected_orders_once(
        self, ledger, clock, make_order, make_courier
    ):
        order = make_order()
        fresh_order = make_order()
        ledger.create_broadcast(order, [(make_courier(), 1.0), (make_courier(), 2.0)], 10)
        clock.advance(11)
        ledger.create_offer(fresh_order, make_courier(), 15)

        assert ledger.expire_stale() == [str(order.id)]
        assert set(
            DeliveryRequest.objects.filter(order=order).values_list("status", flat=True)
        ) == {DeliveryRequestStatus.EXPIRED}
        assert ledger.has_live_pending(str(fresh_order.id))

    def test_expire_stale_skips_resolved_requests(
        self, ledger, clock, make_order, make_courier
    ):
        request = ledger.create_offer(make_order(), make_courier(), 15)
        ledger.mark_responded(str(request.id), DeliveryRequestStatus.REJECTED)
        clock.advance(60)
        assert ledger.expire_stale() == []

    def test_supersede_pending_keeps_the_winner(self, ledger, make_order, make_courier):
        order = make_order()
        winner, loser = ledger.create_broadcast(
            order, [(make_courier(), 1.0), (make_courier(), 2.0)], 300
        )
        ledger.mark_responded(str(winner.id), DeliveryRequestStatus.ACCEPTED)

        assert ledger.supersede_pending(str(order.id), exclude_id=str(winner.id)) == 1
        loser.refresh_from_db()
        assert loser.status == DeliveryRequestStatus.REJECTED
        assert loser.responded_at is None

    def test_record_penalty(self, ledger, make_order, make_courier):
        request = ledger.create_offer(make_order(), make_courier(), 15)
        ledger.record_penalty(request, Decimal("10.00"))
        request.refresh_from_db()
        assert request.penalty_applied
        assert request.penalty_amount == Decimal("10.00")
