"""create scheduling tables

Revision ID: 4c2f8a91d7e3
Revises:
Create Date: 2026-10-17 09:12:41.318204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '4c2f8a91d7e3'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""

    # 1. Businesses and their weekly hours
    op.create_table(
        'businesses',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('owner_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('timezone', sa.String(50), nullable=False, server_default='UTC'),
        sa.Column('auto_confirm', sa.Boolean(), nullable=True),
        sa.Column('slot_granularity_minutes', sa.Integer(), nullable=True),
        sa.Column('rating_average', sa.Numeric(3, 2), nullable=False, server_default='0'),
        sa.Column('rating_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('schedule_version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_businesses_owner_id', 'businesses', ['owner_id'])

    op.create_table(
        'business_hours',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('business_id', sa.Uuid(), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('open_time', sa.String(5), nullable=True),
        sa.Column('close_time', sa.String(5), nullable=True),
        sa.Column('is_closed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.UniqueConstraint('business_id', 'day_of_week', name='uq_business_hours_day'),
    )

    # 2. Services and staff
    op.create_table(
        'services',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('business_id', sa.Uuid(), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('duration_minutes > 0', name='ck_services_duration_positive'),
    )
    op.create_index('ix_services_business_id', 'services', ['business_id'])
    op.create_index('ix_services_is_active', 'services', ['is_active'])

    op.create_table(
        'staff_members',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('business_id', sa.Uuid(), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_staff_members_business_id', 'staff_members', ['business_id'])
    op.create_index('ix_staff_members_user_id', 'staff_members', ['user_id'])

    # 3. Reservations and their audit trail
    op.create_table(
        'reservations',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('business_id', sa.Uuid(), sa.ForeignKey('businesses.id'), nullable=False),
        sa.Column('service_id', sa.Uuid(), sa.ForeignKey('services.id'), nullable=False),
        sa.Column('resource_id', sa.Uuid(), sa.ForeignKey('staff_members.id'), nullable=True),
        sa.Column('client_id', sa.Uuid(), nullable=False),
        sa.Column('appointment_date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('client_notes', sa.Text(), nullable=True),
        sa.Column('business_notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
    )
    op.create_index('ix_reservations_business_date', 'reservations', ['business_id', 'appointment_date'])
    op.create_index('ix_reservations_resource_date', 'reservations', ['resource_id', 'appointment_date'])
    op.create_index('ix_reservations_client_id', 'reservations', ['client_id'])

    op.create_table(
        'reservation_events',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('reservation_id', sa.Uuid(), sa.ForeignKey('reservations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('actor_id', sa.Uuid(), nullable=True),
        sa.Column('actor_role', sa.String(20), nullable=True),
        sa.Column('event_type', sa.String(30), nullable=False),
        sa.Column('from_status', sa.String(20), nullable=True),
        sa.Column('to_status', sa.String(20), nullable=True),
        sa.Column('previous_date', sa.Date(), nullable=True),
        sa.Column('previous_start_time', sa.Time(), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index('ix_reservation_events_reservation_id', 'reservation_events', ['reservation_id'])

    # 4. Waitlist
    op.create_table(
        'waitlist_entries',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('business_id', sa.Uuid(), sa.ForeignKey('businesses.id'), nullable=False),
        sa.Column('service_id', sa.Uuid(), sa.ForeignKey('services.id'), nullable=False),
        sa.Column('client_id', sa.Uuid(), nullable=False),
        sa.Column('requested_date', sa.Date(), nullable=False),
        sa.Column('preferred_start_time', sa.Time(), nullable=True),
        sa.Column('preferred_end_time', sa.Time(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='waiting'),
        sa.Column('offered_date', sa.Date(), nullable=True),
        sa.Column('offered_start_time', sa.Time(), nullable=True),
        sa.Column('offered_resource_id', sa.Uuid(), sa.ForeignKey('staff_members.id'), nullable=True),
        sa.Column('offer_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reservation_id', sa.Uuid(), sa.ForeignKey('reservations.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
    )
    op.create_index(
        'ix_waitlist_lookup',
        'waitlist_entries',
        ['business_id', 'service_id', 'requested_date', 'status', 'created_at']
    )
    op.create_index(
        'ix_waitlist_offered_slot',
        'waitlist_entries',
        ['business_id', 'service_id', 'offered_date', 'offered_start_time']
    )
    op.create_index('ix_waitlist_entries_client_id', 'waitlist_entries', ['client_id'])

    # 5. Reviews
    op.create_table(
        'reviews',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('business_id', sa.Uuid(), sa.ForeignKey('businesses.id'), nullable=False),
        sa.Column('client_id', sa.Uuid(), nullable=False),
        sa.Column('reservation_id', sa.Uuid(), sa.ForeignKey('reservations.id'), nullable=True, unique=True),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('is_visible', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('rating BETWEEN 1 AND 5', name='ck_reviews_rating_range'),
    )
    op.create_index('ix_reviews_business_visible', 'reviews', ['business_id', 'is_visible'])
    op.create_index('ix_reviews_client_id', 'reviews', ['client_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_reviews_client_id', table_name='reviews')
    op.drop_index('ix_reviews_business_visible', table_name='reviews')
    op.drop_table('reviews')

    op.drop_index('ix_waitlist_entries_client_id', table_name='waitlist_entries')
    op.drop_index('ix_waitlist_offered_slot', table_name='waitlist_entries')
    op.drop_index('ix_waitlist_lookup', table_name='waitlist_entries')
    op.drop_table('waitlist_entries')

    op.drop_index('ix_reservation_events_reservation_id', table_name='reservation_events')
    op.drop_table('reservation_events')

    op.drop_index('ix_reservations_client_id', table_name='reservations')
    op.drop_index('ix_reservations_resource_date', table_name='reservations')
    op.drop_index('ix_reservations_business_date', table_name='reservations')
    op.drop_table('reservations')

    op.drop_index('ix_staff_members_user_id', table_name='staff_members')
    op.drop_index('ix_staff_members_business_id', table_name='staff_members')
    op.drop_table('staff_members')

    op.drop_index('ix_services_is_active', table_name='services')
    op.drop_index('ix_services_business_id', table_name='services')
    op.drop_table('services')

    op.drop_table('business_hours')

    op.drop_index('ix_businesses_owner_id', table_name='businesses')
    op.drop_table('businesses')
