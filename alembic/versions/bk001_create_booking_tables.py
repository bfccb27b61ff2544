"""Create booking lifecycle tables

Revision ID: bk001_booking_tables
Revises:
Create Date: 2026-10-19

This migration creates:
- events table (capacity ledger columns + CHECK constraints)
- bookings table (embedded invitation / QR / OTP credentials)
- payments table (one per booking)
- attendance_records table (one per admitted booking)
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'bk001_booking_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ========================================
    # Create events table
    # ========================================
    op.create_table(
        'events',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('organizer_id', sa.String(), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('location', sa.String(255), nullable=True),
        sa.Column('category', sa.String(50), server_default='other', nullable=False),
        sa.Column('starts_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('price', sa.Integer(), server_default='0', nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('capacity', sa.Integer(), nullable=False),
        sa.Column('tickets_sold', sa.Integer(), server_default='0', nullable=False),
        sa.Column('status', sa.String(20), server_default='draft', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('capacity >= 1', name='ck_events_capacity_positive'),
        sa.CheckConstraint('tickets_sold >= 0', name='ck_events_tickets_sold_non_negative'),
        sa.CheckConstraint('tickets_sold <= capacity', name='ck_events_not_oversold'),
        sa.CheckConstraint('price >= 0', name='ck_events_price_non_negative'),
    )
    op.create_index('ix_events_organizer_id', 'events', ['organizer_id'])

    # ========================================
    # Create bookings table
    # ========================================
    op.create_table(
        'bookings',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('event_id', sa.String(), sa.ForeignKey('events.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('ticket_id', sa.String(40), nullable=False, unique=True),
        sa.Column('tickets', sa.Integer(), nullable=False),
        sa.Column('total', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), server_default='pending', nullable=False),
        sa.Column('payment_status', sa.String(20), server_default='pending', nullable=False),
        sa.Column('external_payment_id', sa.String(255), nullable=True),
        sa.Column('invitation_code', sa.String(40), nullable=True, unique=True),
        sa.Column('confirmation_message', sa.Text(), nullable=True),
        # QR ticket
        sa.Column('qr_payload', sa.Text(), nullable=True),
        sa.Column('qr_scanned', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('qr_scanned_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('qr_scanned_by', sa.String(), nullable=True),
        # OTP
        sa.Column('otp_code', sa.String(6), nullable=True),
        sa.Column('otp_generated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('otp_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('otp_verified', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        # Attendance
        sa.Column('attendance_status', sa.String(20), server_default='pending', nullable=False),
        sa.Column('attendance_verified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('attendance_verified_by', sa.String(), nullable=True),
        sa.Column('entry_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('total_attendees', sa.Integer(), server_default='0', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('tickets >= 1', name='ck_bookings_tickets_positive'),
        sa.CheckConstraint('total >= 0', name='ck_bookings_total_non_negative'),
    )
    op.create_index('ix_bookings_event_id', 'bookings', ['event_id'])
    op.create_index('ix_bookings_user_id', 'bookings', ['user_id'])
    op.create_index('ix_bookings_status', 'bookings', ['status'])
    op.create_index(
        'uq_bookings_active_otp_code',
        'bookings',
        ['otp_code'],
        unique=True,
        postgresql_where=sa.text('NOT otp_verified'),
        sqlite_where=sa.text('NOT otp_verified'),
    )

    # ========================================
    # Create payments table
    # ========================================
    op.create_table(
        'payments',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('booking_id', sa.String(), sa.ForeignKey('bookings.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('external_order_id', sa.String(255), nullable=False, unique=True),
        sa.Column('external_payment_id', sa.String(255), nullable=True),
        sa.Column('status', sa.String(20), server_default='pending', nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    op.create_index('ix_payments_user_id', 'payments', ['user_id'])
    op.create_index('ix_payments_external_payment_id', 'payments', ['external_payment_id'])

    # ========================================
    # Create attendance_records table
    # ========================================
    op.create_table(
        'attendance_records',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('booking_id', sa.String(), sa.ForeignKey('bookings.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('event_id', sa.String(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('verified_by', sa.String(), nullable=False),
        sa.Column('verified_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('ticket_id', sa.String(40), nullable=False),
        sa.Column('credential_kind', sa.String(20), nullable=False),
        sa.Column('number_of_tickets', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), server_default='present', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    op.create_index('ix_attendance_records_event_id', 'attendance_records', ['event_id'])
    op.create_index('ix_attendance_records_user_id', 'attendance_records', ['user_id'])


def downgrade() -> None:
    op.drop_index('ix_attendance_records_user_id', table_name='attendance_records')
    op.drop_index('ix_attendance_records_event_id', table_name='attendance_records')
    op.drop_table('attendance_records')

    op.drop_index('ix_payments_external_payment_id', table_name='payments')
    op.drop_index('ix_payments_user_id', table_name='payments')
    op.drop_table('payments')

    op.drop_index('uq_bookings_active_otp_code', table_name='bookings')
    op.drop_index('ix_bookings_status', table_name='bookings')
    op.drop_index('ix_bookings_user_id', table_name='bookings')
    op.drop_index('ix_bookings_event_id', table_name='bookings')
    op.drop_table('bookings')

    op.drop_index('ix_events_organizer_id', table_name='events')
    op.drop_table('events')
