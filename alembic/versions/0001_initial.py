"""initial

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ### commands auto generated ###
    op.create_table('users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('gender', sa.String(length=16), nullable=True),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('role', sa.String(length=16), nullable=False, server_default='user'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('email', name='users_email_key'),
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'], unique=False)

    op.create_table('flights',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('flight_number', sa.String(length=6), nullable=False),
        sa.Column('departure', sa.String(length=128), nullable=False),
        sa.Column('destination', sa.String(length=128), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('time', sa.Time(), nullable=False),
        sa.Column('max_tickets', sa.Integer(), nullable=False),
        sa.Column('available_tickets', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('seat_selection', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('max_tickets >= 1', name='ck_flight_max_tickets_positive'),
        sa.CheckConstraint('available_tickets >= 0', name='ck_flight_available_non_negative'),
        sa.CheckConstraint('available_tickets <= max_tickets', name='ck_flight_available_within_capacity'),
        sa.CheckConstraint('price >= 0', name='ck_flight_price_non_negative'),
    )
    op.create_index('ix_flights_flight_number', 'flights', ['flight_number'], unique=True)
    op.create_index('ix_flights_departure', 'flights', ['departure'], unique=False)
    op.create_index('ix_flights_destination', 'flights', ['destination'], unique=False)
    op.create_index('ix_flights_date', 'flights', ['date'], unique=False)

    op.create_table('bookings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('flight_id', sa.Integer(), sa.ForeignKey('flights.id', ondelete='SET NULL'), nullable=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('seats', sa.Integer(), nullable=False),
        sa.Column('seat_numbers', sa.JSON(), nullable=False),
        sa.Column('unit_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('total_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('booking_date', sa.Date(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('seats >= 1', name='ck_booking_seats_positive'),
    )
    op.create_index('ix_bookings_flight_id', 'bookings', ['flight_id'], unique=False)
    op.create_index('ix_bookings_user_id', 'bookings', ['user_id'], unique=False)

    op.create_table('booked_seats',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('flight_id', sa.Integer(), sa.ForeignKey('flights.id', ondelete='CASCADE'), nullable=False),
        sa.Column('booking_id', sa.Integer(), sa.ForeignKey('bookings.id', ondelete='CASCADE'), nullable=False),
        sa.Column('seat_label', sa.String(length=8), nullable=False),
        sa.UniqueConstraint('flight_id', 'seat_label', name='uq_flight_seat_label'),
    )
    op.create_index('ix_booked_seats_booking_id', 'booked_seats', ['booking_id'], unique=False)

    op.create_table('audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('actor_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('action', sa.String(length=255), nullable=False),
        sa.Column('object_type', sa.String(length=128), nullable=True),
        sa.Column('object_id', sa.String(length=128), nullable=True),
        sa.Column('detail', sa.JSON(), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    )
    op.create_index('ix_audit_logs_actor_id', 'audit_logs', ['actor_id'], unique=False)
    op.create_index('ix_audit_object', 'audit_logs', ['object_type', 'object_id'], unique=False)
    # ### end Alembic commands ###


def downgrade():
    op.drop_index('ix_audit_object', table_name='audit_logs')
    op.drop_index('ix_audit_logs_actor_id', table_name='audit_logs')
    op.drop_table('audit_logs')
    op.drop_index('ix_booked_seats_booking_id', table_name='booked_seats')
    op.drop_table('booked_seats')
    op.drop_index('ix_bookings_user_id', table_name='bookings')
    op.drop_index('ix_bookings_flight_id', table_name='bookings')
    op.drop_table('bookings')
    op.drop_index('ix_flights_date', table_name='flights')
    op.drop_index('ix_flights_destination', table_name='flights')
    op.drop_index('ix_flights_departure', table_name='flights')
    op.drop_index('ix_flights_flight_number', table_name='flights')
    op.drop_table('flights')
    op.drop_index('ix_users_role', table_name='users')
    op.drop_index('ix_users_username', table_name='users')
    op.drop_table('users')
