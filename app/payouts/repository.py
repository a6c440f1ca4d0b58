# app/payouts/repository.py
from __future__ import annotations

import uuid
from datetime import date, datetime, time, timezone
from typing import Any, Optional

from psycopg2.extras import Json, RealDictCursor

from app.payouts.model import (
    ENTITY_TYPE_PAYOUT,
    FAILED,
    LEDGER_TYPE_PAYOUT,
    PAID,
    PENDING,
    PROCESSING,
    LedgerEntry,
    Order,
    OrderItem,
    Payout,
    to_money,
)
from db import get_conn

PAYOUT_COLUMNS = """
  p.id::text AS id,
  p.seller_id,
  p.order_id,
  p.amount,
  p.commission_amount,
  p.currency,
  p.status,
  p.provider_ref,
  p.failure_reason,
  p.created_at,
  p.claimed_at,
  p.paid_at
"""


def _is_uuid(value: Any) -> bool:
    try:
        uuid.UUID(str(value))
        return True
    except ValueError:
        return False


def end_of_day_utc(cutoff: date) -> datetime:
    return datetime.combine(cutoff, time.max, tzinfo=timezone.utc)


def _row_to_payout(row: dict[str, Any]) -> Payout:
    return Payout(
        id=str(row["id"]),
        seller_id=str(row["seller_id"]),
        order_id=str(row["order_id"]),
        amount=to_money(row["amount"]),
        commission_amount=to_money(row["commission_amount"] or 0),
        currency=row["currency"],
        status=row["status"],
        provider_ref=row.get("provider_ref"),
        failure_reason=row.get("failure_reason"),
        created_at=row.get("created_at"),
        claimed_at=row.get("claimed_at"),
        paid_at=row.get("paid_at"),
    )


def _row_to_entry(row: dict[str, Any]) -> LedgerEntry:
    return LedgerEntry(
        id=str(row["id"]),
        type=row["type"],
        entity_type=row["entity_type"],
        entity_id=str(row["entity_id"]),
        amount=to_money(row["amount"]),
        currency=row["currency"],
        meta=row.get("meta") or {},
        created_at=row.get("created_at"),
    )


# ==========================================================
# Reads
# ==========================================================

def get_payout(conn, payout_id: str) -> Optional[Payout]:
    if not _is_uuid(payout_id):
        return None
    with conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute(
            f"SELECT {PAYOUT_COLUMNS} FROM app.payouts p WHERE p.id = %s::uuid",
            (str(payout_id),),
        )
        row = cur.fetchone()
        return _row_to_payout(row) if row else None


def list_pending_for_cutoff(conn, cutoff: date) -> list[Payout]:
    with conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute(
            f"""
            SELECT {PAYOUT_COLUMNS}
            FROM app.payouts p
            JOIN app.orders o ON o.id = p.order_id
            WHERE p.status = %s
              AND o.delivered_at IS NOT NULL
              AND o.delivered_at <= %s
            ORDER BY p.created_at, p.id
            """,
            (PENDING, end_of_day_utc(cutoff)),
        )
        return [_row_to_payout(r) for r in cur.fetchall()]


def get_order(conn, order_id: str) -> Optional[Order]:
    with conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute(
            "SELECT id, status, currency, delivered_at FROM app.orders WHERE id = %s",
            (order_id,),
        )
        row = cur.fetchone()
        if not row:
            return None
        return Order(
            id=str(row["id"]),
            status=(row["status"] or "").strip().lower(),
            currency=row["currency"],
            delivered_at=row.get("delivered_at"),
        )


def list_order_items(conn, order_id: str) -> list[OrderItem]:
    with conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute(
            """
            SELECT order_id, seller_id, seller_due_cents, commission_amount_cents
            FROM app.order_items
            WHERE order_id = %s
            ORDER BY id
            """,
            (order_id,),
        )
        return [
            OrderItem(
                order_id=str(r["order_id"]),
                seller_id=str(r["seller_id"]),
                seller_due_cents=int(r["seller_due_cents"] or 0),
                commission_amount_cents=int(r["commission_amount_cents"] or 0),
            )
            for r in cur.fetchall()
        ]


# ==========================================================
# Status transitions (compare-and-set on status)
# ==========================================================

def claim_pending(conn, payout_id: str) -> bool:
    cur = conn.cursor()
    cur.execute(
        """
        UPDATE app.payouts
        SET status = %s,
            claimed_at = now()
        WHERE id = %s::uuid
          AND status = %s
        """,
        (PROCESSING, str(payout_id), PENDING),
    )
    return cur.rowcount == 1


def mark_paid(conn, payout_id: str, *, provider_ref: str, paid_at: datetime) -> bool:
    cur = conn.cursor()
    cur.execute(
        """
        UPDATE app.payouts
        SET status = %s,
            provider_ref = %s,
            paid_at = %s,
            failure_reason = NULL
        WHERE id = %s::uuid
          AND status = %s
        """,
        (PAID, provider_ref, paid_at, str(payout_id), PROCESSING),
    )
    return cur.rowcount == 1


def mark_failed(conn, payout_id: str, *, failure_reason: str) -> bool:
    cur = conn.cursor()
    cur.execute(
        """
        UPDATE app.payouts
        SET status = %s,
            failure_reason = %s
        WHERE id = %s::uuid
          AND status = %s
        """,
        (FAILED, failure_reason, str(payout_id), PROCESSING),
    )
    return cur.rowcount == 1


def insert_pending_payout(conn, payout: Payout) -> bool:
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO app.payouts (
          id, seller_id, order_id, amount, commission_amount, currency, status, created_at
        )
        VALUES (%s::uuid, %s, %s, %s, %s, %s, %s, COALESCE(%s, now()))
        ON CONFLICT (order_id, seller_id) DO NOTHING
        """,
        (
            str(payout.id),
            payout.seller_id,
            payout.order_id,
            str(payout.amount),
            str(payout.commission_amount),
            payout.currency,
            PENDING,
            payout.created_at,
        ),
    )
    return cur.rowcount == 1


# ==========================================================
# Ledger (append only; UPDATE/DELETE are rejected by a trigger)
# ==========================================================

def insert_ledger_entry(conn, entry: LedgerEntry) -> bool:
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO app.ledger (type, entity_type, entity_id, amount, currency, meta)
        VALUES (%s, %s, %s, %s, %s, %s)
        ON CONFLICT DO NOTHING
        """,
        (
            entry.type,
            entry.entity_type,
            entry.entity_id,
            str(entry.amount),
            entry.currency,
            Json(entry.meta or {}),
        ),
    )
    return cur.rowcount == 1


def list_ledger_entries(conn, *, entity_type: str, entity_id: str) -> list[LedgerEntry]:
    with conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute(
            """
            SELECT id::text AS id, type, entity_type, entity_id, amount, currency, meta, created_at
            FROM app.ledger
            WHERE entity_type = %s
              AND entity_id = %s
            ORDER BY created_at DESC
            """,
            (entity_type, entity_id),
        )
        return [_row_to_entry(r) for r in cur.fetchall()]


def ledger_totals_by_type(
    conn,
    *,
    currency: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> list[dict[str, Any]]:
    with conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute(
            """
            SELECT type, COUNT(*)::int AS count, COALESCE(SUM(amount), 0) AS total
            FROM app.ledger
            WHERE currency = %s
              AND (%s::timestamptz IS NULL OR created_at >= %s::timestamptz)
              AND (%s::timestamptz IS NULL OR created_at <= %s::timestamptz)
            GROUP BY type
            ORDER BY type
            """,
            (currency, start, start, end, end),
        )
        return [
            {"type": r["type"], "count": int(r["count"]), "total": to_money(r["total"])}
            for r in cur.fetchall()
        ]


def list_paid_missing_ledger(conn) -> list[Payout]:
    with conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute(
            f"""
            SELECT {PAYOUT_COLUMNS}
            FROM app.payouts p
            WHERE p.status = %s
              AND NOT EXISTS (
                SELECT 1 FROM app.ledger l
                WHERE l.type = %s
                  AND l.entity_type = %s
                  AND l.entity_id = p.id::text
              )
            ORDER BY p.paid_at NULLS FIRST, p.id
            """,
            (PAID, LEDGER_TYPE_PAYOUT, ENTITY_TYPE_PAYOUT),
        )
        return [_row_to_payout(r) for r in cur.fetchall()]


def list_stuck_processing(conn, older_than: datetime) -> list[Payout]:
    with conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute(
            f"""
            SELECT {PAYOUT_COLUMNS}
            FROM app.payouts p
            WHERE p.status = %s
              AND COALESCE(p.claimed_at, p.created_at) < %s
            ORDER BY COALESCE(p.claimed_at, p.created_at), p.id
            """,
            (PROCESSING, older_than),
        )
        return [_row_to_payout(r) for r in cur.fetchall()]


def list_payout_ledger_mismatches(conn) -> list[dict[str, Any]]:
    with conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute(
            """
            SELECT
              p.id::text AS payout_id,
              p.amount,
              COUNT(l.id)::int AS entry_count,
              COALESCE(SUM(l.amount), 0) AS ledger_total
            FROM app.payouts p
            JOIN app.ledger l
              ON l.type = %s
             AND l.entity_type = %s
             AND l.entity_id = p.id::text
            GROUP BY p.id, p.amount
            HAVING COUNT(l.id) > 1 OR COALESCE(SUM(l.amount), 0) <> -p.amount
            ORDER BY p.id
            """,
            (LEDGER_TYPE_PAYOUT, ENTITY_TYPE_PAYOUT),
        )
        return [
            {
                "payout_id": r["payout_id"],
                "amount": to_money(r["amount"]),
                "entry_count": int(r["entry_count"]),
                "ledger_total": to_money(r["ledger_total"]),
            }
            for r in cur.fetchall()
        ]


# ==========================================================
# Store
# ==========================================================

class PostgresPayoutStore:
    """PayoutStore backed by the pooled psycopg2 connection in db.py."""

    def get_payout(self, payout_id: str) -> Optional[Payout]:
        with get_conn() as conn:
            return get_payout(conn, payout_id)

    def claim_pending(self, payout_id: str) -> bool:
        with get_conn() as conn:
            return claim_pending(conn, payout_id)

    def complete_paid(self, payout_id: str, *, provider_ref: str, paid_at: datetime, entry: LedgerEntry) -> bool:
        # one transaction: get_conn() commits both writes or rolls both back
        with get_conn() as conn:
            if not mark_paid(conn, payout_id, provider_ref=provider_ref, paid_at=paid_at):
                return False
            insert_ledger_entry(conn, entry)
            return True

    def mark_failed(self, payout_id: str, *, failure_reason: str) -> bool:
        with get_conn() as conn:
            return mark_failed(conn, payout_id, failure_reason=failure_reason)

    def list_pending_for_cutoff(self, cutoff: date) -> list[Payout]:
        with get_conn() as conn:
            return list_pending_for_cutoff(conn, cutoff)

    def insert_pending_payout(self, payout: Payout) -> bool:
        with get_conn() as conn:
            return insert_pending_payout(conn, payout)

    def get_order(self, order_id: str) -> Optional[Order]:
        with get_conn() as conn:
            return get_order(conn, order_id)

    def list_order_items(self, order_id: str) -> list[OrderItem]:
        with get_conn() as conn:
            return list_order_items(conn, order_id)

    def insert_ledger_entry(self, entry: LedgerEntry) -> bool:
        with get_conn() as conn:
            return insert_ledger_entry(conn, entry)

    def list_ledger_entries(self, *, entity_type: str, entity_id: str) -> list[LedgerEntry]:
        with get_conn() as conn:
            return list_ledger_entries(conn, entity_type=entity_type, entity_id=entity_id)

    def ledger_totals_by_type(
        self,
        *,
        currency: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[dict[str, Any]]:
        with get_conn() as conn:
            return ledger_totals_by_type(conn, currency=currency, start=start, end=end)

    def list_paid_missing_ledger(self) -> list[Payout]:
        with get_conn() as conn:
            return list_paid_missing_ledger(conn)

    def list_stuck_processing(self, older_than: datetime) -> list[Payout]:
        with get_conn() as conn:
            return list_stuck_processing(conn, older_than)

    def list_payout_ledger_mismatches(self) -> list[dict[str, Any]]:
        with get_conn() as conn:
            return list_payout_ledger_mismatches(conn)
