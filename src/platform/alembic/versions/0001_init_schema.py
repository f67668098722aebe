"""init_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18

Schema:
- app_user: Accounts (owned by the account service, read here)
- event: Events with the authoritative capacity counter (0 <= available <= total)
- inventory_reservation: Capacity held by one purchase (active → released | consumed)
- purchase_intent: One checkout attempt (pending → confirmed | failed)
- ticket: Issued tickets, one batch per confirmed purchase
- validation_attempt / revocation_log / purchase_audit: Append-only audit tables
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column(
        'created_at',
        sa.DateTime(timezone=True),
        server_default=sa.text('now()'),
        nullable=False,
    )


def upgrade() -> None:
    """Create all tables with final schema."""

    # ========== STEP 1: Base tables ==========

    op.create_table(
        'app_user',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('verification_status', sa.String(length=20), nullable=False),
        sa.Column('is_admin', sa.Boolean(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_app_user_email'), 'app_user', ['email'], unique=True)

    op.create_table(
        'event',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('venue', sa.String(length=255), nullable=False),
        sa.Column('event_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('total', sa.Integer(), nullable=False),
        sa.Column('available', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        _created_at(),
        sa.CheckConstraint(
            'available >= 0 AND available <= total', name='ck_event_available_within_total'
        ),
        sa.PrimaryKeyConstraint('id'),
    )

    # ========== STEP 2: Purchase pipeline ==========

    op.create_table(
        'inventory_reservation',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('event_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        _created_at(),
        sa.Column('released_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['event_id'], ['event.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        op.f('ix_inventory_reservation_event_id'), 'inventory_reservation', ['event_id']
    )

    op.create_table(
        'purchase_intent',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('event_id', sa.Integer(), nullable=False),
        sa.Column('reservation_id', sa.Uuid(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('external_order_id', sa.String(length=128), nullable=True),
        sa.Column('external_transaction_id', sa.String(length=128), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=False),
        sa.Column('failure_reason', sa.Text(), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        _created_at(),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['event_id'], ['event.id']),
        sa.ForeignKeyConstraint(['reservation_id'], ['inventory_reservation.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('external_order_id'),
    )
    op.create_index(op.f('ix_purchase_intent_user_id'), 'purchase_intent', ['user_id'])
    op.create_index(op.f('ix_purchase_intent_event_id'), 'purchase_intent', ['event_id'])
    op.create_index(
        op.f('ix_purchase_intent_external_transaction_id'),
        'purchase_intent',
        ['external_transaction_id'],
    )
    # Expiry sweep scans pending intents by deadline
    op.create_index(
        'ix_purchase_intent_status_expires_at', 'purchase_intent', ['status', 'expires_at']
    )

    op.create_table(
        'ticket',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('event_id', sa.Integer(), nullable=False),
        sa.Column('payment_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('sequence_number', sa.Integer(), nullable=False),
        sa.Column('group_size', sa.Integer(), nullable=False),
        sa.Column('parent_ticket_id', sa.Uuid(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('qr_payload', sa.Text(), nullable=False),
        sa.Column('validation_hash', sa.String(length=64), nullable=False),
        sa.Column('registry_token_id', sa.String(length=80), nullable=False),
        sa.Column('registration_status', sa.String(length=20), nullable=False),
        sa.Column('registration_tx_ref', sa.String(length=128), nullable=True),
        sa.Column('registration_error', sa.Text(), nullable=True),
        sa.Column('registration_error_category', sa.String(length=32), nullable=True),
        sa.Column('registration_attempts', sa.Integer(), nullable=False),
        sa.Column('bound_name', sa.String(length=255), nullable=True),
        sa.Column('issued_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('used_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['event_id'], ['event.id']),
        sa.ForeignKeyConstraint(['payment_id'], ['purchase_intent.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('registry_token_id'),
        sa.UniqueConstraint('payment_id', 'sequence_number', name='uq_ticket_payment_sequence'),
    )
    op.create_index(op.f('ix_ticket_event_id'), 'ticket', ['event_id'])
    op.create_index(op.f('ix_ticket_payment_id'), 'ticket', ['payment_id'])
    op.create_index(op.f('ix_ticket_user_id'), 'ticket', ['user_id'])
    op.create_index(op.f('ix_ticket_registration_status'), 'ticket', ['registration_status'])

    # ========== STEP 3: Audit tables ==========

    op.create_table(
        'validation_attempt',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('ticket_id', sa.Uuid(), nullable=True),
        sa.Column('scanner_id', sa.Integer(), nullable=False),
        sa.Column('verdict', sa.String(length=32), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('device_id', sa.String(length=255), nullable=True),
        sa.Column('registry_status', sa.String(length=32), nullable=True),
        sa.Column('identity_match', sa.String(length=32), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_validation_attempt_ticket_id'), 'validation_attempt', ['ticket_id'])

    op.create_table(
        'revocation_log',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('ticket_id', sa.Uuid(), nullable=False),
        sa.Column('admin_id', sa.Integer(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_revocation_log_ticket_id'), 'revocation_log', ['ticket_id'])

    op.create_table(
        'purchase_audit',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('payment_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('event_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_purchase_audit_payment_id'), 'purchase_audit', ['payment_id'])
    op.create_index(op.f('ix_purchase_audit_user_id'), 'purchase_audit', ['user_id'])


def downgrade() -> None:
    for table in (
        'purchase_audit',
        'revocation_log',
        'validation_attempt',
        'ticket',
        'purchase_intent',
        'inventory_reservation',
        'event',
        'app_user',
    ):
        op.drop_table(table)
