"""Asynchronous dispatch tasks.

``dispatch_order`` is queued on commit when an order becomes dispatchable;
``expire_stale_offers`` runs on the beat schedule and moves orders whose
offers timed out on to their next candidate.
"""

import structlog
from celery import shared_task

from modules.core.exceptions import DomainError, NoCourierAvailable

logger = structlog.get_logger(__name__)


@shared_task(name="deliveries.dispatch_order")
def dispatch_order(order_id: str) -> dict:
    from modules.deliveries.factories import build_dispatch_matcher

    try:
        offers = build_dispatch_matcher().dispatch(order_id)
    except NoCourierAvailable:
        logger.warning("dispatch.task_no_courier", order_id=order_id)
        return {"order_id": order_id, "offers": 0}
    except DomainError as exc:
        # The order moved on (cancelled, assigned, already offered) before the task ran.
        logger.info("dispatch.task_skipped", order_id=order_id, reason=exc.code)
        return {"order_id": order_id, "offers": 0, "skipped": exc.code}
    return {"order_id": order_id, "offers": len(offers)}


@shared_task(name="deliveries.expire_stale_offers")
def expire_stale_offers() -> dict:
    from modules.deliveries.factories import build_dispatch_matcher, build_ledger

    order_ids = build_ledger().expire_stale()
    matcher = build_dispatch_matcher()
    escalated = exhausted = 0
    for order_id in order_ids:
        try:
            if matcher.escalate(order_id):
                escalated += 1
        except NoCourierAvailable:
            exhausted += 1
            logger.warning("dispatch.candidates_exhausted_after_expiry", order_id=order_id)

    if order_ids:
        logger.info(
            "dispatch.expiry_sweep",
            orders=len(order_ids),
            escalated=escalated,
            exhausted=exhausted,
        )
    return {"orders": len(order_ids), "escalated": escalated, "exhausted": exhausted}
