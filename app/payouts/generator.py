# app/payouts/generator.py
from __future__ import annotations

import logging
import uuid
from collections import OrderedDict
from typing import Callable

from app.payouts.errors import OrderNotDelivered, OrderNotFound
from app.payouts.model import PENDING, Payout, cents_to_money, normalize_currency
from app.payouts.store import PayoutStore

logger = logging.getLogger("payouts.generator")

DELIVERED = "delivered"


def seller_totals(items) -> "OrderedDict[str, tuple[int, int]]":
    """seller_id -> (seller_due_cents, commission_cents), in first-seen order."""
    totals: "OrderedDict[str, tuple[int, int]]" = OrderedDict()
    for item in items:
        due, commission = totals.get(item.seller_id, (0, 0))
        totals[item.seller_id] = (due + int(item.seller_due_cents), commission + int(item.commission_amount_cents))
    return totals


def create_payouts_for_delivered_order(
    store: PayoutStore,
    order_id: str,
    *,
    new_id: Callable[[], str] = lambda: str(uuid.uuid4()),
) -> list[Payout]:
    """
    One pending payout per seller with a strictly positive amount due.
    Sellers owed nothing are skipped. Re-running for the same order creates
    nothing new.
    """
    order = store.get_order(order_id)
    if order is None:
        raise OrderNotFound(order_id)
    if order.status != DELIVERED:
        raise OrderNotDelivered(order_id, order.status)

    items = store.list_order_items(order_id)
    created: list[Payout] = []

    for seller_id, (due_cents, commission_cents) in seller_totals(items).items():
        if due_cents <= 0:
            logger.info("order %s seller %s owed nothing, no payout", order_id, seller_id)
            continue

        payout = Payout(
            id=new_id(),
            seller_id=seller_id,
            order_id=order_id,
            amount=cents_to_money(due_cents),
            commission_amount=cents_to_money(commission_cents),
            currency=normalize_currency(order.currency),
            status=PENDING,
        )
        if store.insert_pending_payout(payout):
            created.append(payout)
            logger.info("created payout %s for seller %s: %s %s", payout.id, seller_id, payout.amount, payout.currency)
        else:
            logger.info("order %s seller %s already has a payout", order_id, seller_id)

    return created
