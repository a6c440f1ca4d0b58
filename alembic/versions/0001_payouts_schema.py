"""payouts and ledger schema

Revision ID: 0001_payouts_schema
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from __future__ import annotations

from alembic import op


revision = "0001_payouts_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto;")
    op.execute("CREATE SCHEMA IF NOT EXISTS app;")

    # orders are owned upstream; created here only when absent
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS app.orders (
          id text PRIMARY KEY,
          status text NOT NULL,
          currency text NOT NULL DEFAULT 'RON',
          delivered_at timestamptz,
          created_at timestamptz NOT NULL DEFAULT now()
        );
        """
    )
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS app.order_items (
          id bigserial PRIMARY KEY,
          order_id text NOT NULL REFERENCES app.orders(id),
          seller_id text NOT NULL,
          seller_due_cents bigint NOT NULL DEFAULT 0,
          commission_amount_cents bigint NOT NULL DEFAULT 0
        );
        """
    )
    op.execute("CREATE INDEX IF NOT EXISTS ix_order_items_order_id ON app.order_items (order_id);")

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS app.payouts (
          id uuid PRIMARY KEY DEFAULT gen_random_uuid(),
          seller_id text NOT NULL,
          order_id text NOT NULL REFERENCES app.orders(id),
          amount numeric(12, 2) NOT NULL CHECK (amount > 0),
          commission_amount numeric(12, 2) NOT NULL DEFAULT 0,
          currency text NOT NULL,
          status text NOT NULL DEFAULT 'pending'
            CHECK (status IN ('pending', 'processing', 'paid', 'failed')),
          provider_ref text,
          failure_reason text,
          created_at timestamptz NOT NULL DEFAULT now(),
          claimed_at timestamptz,
          paid_at timestamptz,
          CONSTRAINT payouts_paid_requires_ref
            CHECK (status <> 'paid' OR (provider_ref IS NOT NULL AND paid_at IS NOT NULL)),
          CONSTRAINT payouts_failed_requires_reason
            CHECK (status <> 'failed' OR failure_reason IS NOT NULL),
          CONSTRAINT payouts_order_seller_unique UNIQUE (order_id, seller_id)
        );
        """
    )
    op.execute("CREATE INDEX IF NOT EXISTS ix_payouts_status ON app.payouts (status);")

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS app.ledger (
          id uuid PRIMARY KEY DEFAULT gen_random_uuid(),
          type text NOT NULL,
          entity_type text NOT NULL,
          entity_id text NOT NULL,
          amount numeric(12, 2) NOT NULL,
          currency text NOT NULL,
          meta jsonb NOT NULL DEFAULT '{}'::jsonb,
          created_at timestamptz NOT NULL DEFAULT now()
        );
        """
    )
    op.execute("CREATE INDEX IF NOT EXISTS ix_ledger_entity ON app.ledger (entity_type, entity_id);")
    op.execute("CREATE INDEX IF NOT EXISTS ix_ledger_currency_created ON app.ledger (currency, created_at);")
    # at most one payout entry per payout
    op.execute(
        """
        CREATE UNIQUE INDEX IF NOT EXISTS ux_ledger_payout_entity
        ON app.ledger (entity_id)
        WHERE type = 'payout' AND entity_type = 'payout';
        """
    )

    op.execute(
        """
        CREATE OR REPLACE FUNCTION app.ledger_reject_mutation() RETURNS trigger AS $$
        BEGIN
          RAISE EXCEPTION 'app.ledger is append-only';
        END;
        $$ LANGUAGE plpgsql;
        """
    )
    op.execute("DROP TRIGGER IF EXISTS ledger_append_only ON app.ledger;")
    op.execute(
        """
        CREATE TRIGGER ledger_append_only
        BEFORE UPDATE OR DELETE ON app.ledger
        FOR EACH ROW EXECUTE FUNCTION app.ledger_reject_mutation();
        """
    )


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS ledger_append_only ON app.ledger;")
    op.execute("DROP FUNCTION IF EXISTS app.ledger_reject_mutation();")
    op.execute("DROP TABLE IF EXISTS app.ledger;")
    op.execute("DROP TABLE IF EXISTS app.payouts;")
