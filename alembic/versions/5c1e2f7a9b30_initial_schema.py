"""Initial schema

Revision ID: 5c1e2f7a9b30
Revises:
Create Date: 2026-10-19 09:12:41.203518

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '5c1e2f7a9b30'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

json_type = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('users',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('name', sa.String(length=255), nullable=False),
    sa.Column('timezone', sa.String(length=50), nullable=False),
    sa.Column('ntfy_topic', sa.String(length=100), nullable=True),
    sa.Column('snooze_pattern', json_type, nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.Column('updated_at', sa.DateTime(), nullable=False),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)

    op.create_table('contacts',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('user_id', sa.Integer(), nullable=False),
    sa.Column('name', sa.String(length=255), nullable=False),
    sa.Column('email', sa.String(length=255), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_contacts_id'), 'contacts', ['id'], unique=False)
    op.create_index(op.f('ix_contacts_user_id'), 'contacts', ['user_id'], unique=False)

    op.create_table('reminders',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('user_id', sa.Integer(), nullable=False),
    sa.Column('contact_id', sa.Integer(), nullable=True),
    sa.Column('message', sa.Text(), nullable=False),
    sa.Column('scheduled_time', sa.DateTime(), nullable=False),
    sa.Column('notification_method', sa.String(length=20), nullable=False),
    sa.Column('status', sa.String(length=50), nullable=False),
    sa.Column('sent_time', sa.DateTime(), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.ForeignKeyConstraint(['contact_id'], ['contacts.id'], ),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_reminders_id'), 'reminders', ['id'], unique=False)
    op.create_index('idx_reminders_scheduled_time', 'reminders', ['scheduled_time'], unique=False)
    op.create_index('idx_reminders_status', 'reminders', ['status'], unique=False)
    op.create_index('idx_reminders_user_id', 'reminders', ['user_id'], unique=False)

    op.create_table('snooze_preferences',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('user_id', sa.Integer(), nullable=False),
    sa.Column('working_hours_start', sa.Time(), nullable=False),
    sa.Column('working_hours_end', sa.Time(), nullable=False),
    sa.Column('working_days', json_type, nullable=False),
    sa.Column('quiet_hours_start', sa.Time(), nullable=True),
    sa.Column('quiet_hours_end', sa.Time(), nullable=True),
    sa.Column('allow_weekends', sa.Boolean(), nullable=False),
    sa.Column('max_reminders_per_day', sa.Integer(), nullable=False),
    sa.Column('cooldown_minutes', sa.Integer(), nullable=False),
    sa.Column('bundle_enabled', sa.Boolean(), nullable=False),
    sa.Column('bundle_window_minutes', sa.Integer(), nullable=False),
    sa.Column('bundle_format', sa.String(length=20), nullable=False),
    sa.Column('smart_suggestions_enabled', sa.Boolean(), nullable=False),
    sa.Column('dnd_enabled', sa.Boolean(), nullable=False),
    sa.Column('dnd_override_rules', json_type, nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.Column('updated_at', sa.DateTime(), nullable=False),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('user_id')
    )

    op.create_table('category_preferences',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('user_id', sa.Integer(), nullable=False),
    sa.Column('category', sa.String(length=20), nullable=False),
    sa.Column('default_duration_minutes', sa.Integer(), nullable=False),
    sa.Column('intensity', sa.String(length=10), nullable=False),
    sa.Column('enabled', sa.Boolean(), nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.Column('updated_at', sa.DateTime(), nullable=False),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('user_id', 'category', name='uq_category_preferences')
    )

    op.create_table('affirmation_preferences',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('user_id', sa.Integer(), nullable=False),
    sa.Column('enabled', sa.Boolean(), nullable=False),
    sa.Column('sales_momentum_enabled', sa.Boolean(), nullable=False),
    sa.Column('calm_productivity_enabled', sa.Boolean(), nullable=False),
    sa.Column('consistency_enabled', sa.Boolean(), nullable=False),
    sa.Column('resilience_enabled', sa.Boolean(), nullable=False),
    sa.Column('focus_enabled', sa.Boolean(), nullable=False),
    sa.Column('general_positive_enabled', sa.Boolean(), nullable=False),
    sa.Column('global_cooldown_minutes', sa.Integer(), nullable=False),
    sa.Column('daily_cap', sa.Integer(), nullable=False),
    sa.Column('tone_preference', sa.String(length=10), nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.Column('updated_at', sa.DateTime(), nullable=False),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('user_id')
    )

    op.create_table('reminder_cooldowns',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('user_id', sa.Integer(), nullable=False),
    sa.Column('contact_id', sa.Integer(), nullable=True),
    sa.Column('entity_type', sa.String(length=20), nullable=True),
    sa.Column('last_reminder_at', sa.DateTime(), nullable=False),
    sa.ForeignKeyConstraint(['contact_id'], ['contacts.id'], ),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('user_id', 'contact_id', 'entity_type', name='uq_reminder_cooldowns')
    )

    op.create_table('reminder_bundles',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('user_id', sa.Integer(), nullable=False),
    sa.Column('bundle_time', sa.DateTime(), nullable=False),
    sa.Column('delivery_format', sa.String(length=20), nullable=False),
    sa.Column('delivered', sa.Boolean(), nullable=False),
    sa.Column('delivered_at', sa.DateTime(), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_reminder_bundles_id'), 'reminder_bundles', ['id'], unique=False)
    op.create_index('idx_reminder_bundles_user_time', 'reminder_bundles', ['user_id', 'bundle_time'], unique=False)

    op.create_table('reminder_bundle_items',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('bundle_id', sa.Integer(), nullable=False),
    sa.Column('reminder_id', sa.Integer(), nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.ForeignKeyConstraint(['bundle_id'], ['reminder_bundles.id'], ),
    sa.ForeignKeyConstraint(['reminder_id'], ['reminders.id'], ),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('bundle_id', 'reminder_id', name='uq_reminder_bundle_items')
    )

    op.create_table('events',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('user_id', sa.Integer(), nullable=False),
    sa.Column('event_type', sa.String(length=50), nullable=False),
    sa.Column('event_data', json_type, nullable=False),
    sa.Column('source', sa.String(length=20), nullable=False),
    sa.Column('contact_id', sa.Integer(), nullable=True),
    sa.Column('reminder_id', sa.Integer(), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_events_id'), 'events', ['id'], unique=False)
    op.create_index('idx_events_user_type_created', 'events', ['user_id', 'event_type', 'created_at'], unique=False)
    op.create_index('idx_events_reminder_id', 'events', ['reminder_id'], unique=False)

    op.create_table('popup_rules',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('user_id', sa.Integer(), nullable=False),
    sa.Column('rule_name', sa.String(length=255), nullable=False),
    sa.Column('trigger_event_type', sa.String(length=50), nullable=False),
    sa.Column('template_key', sa.String(length=50), nullable=False),
    sa.Column('conditions', json_type, nullable=False),
    sa.Column('priority', sa.Integer(), nullable=False),
    sa.Column('cooldown_seconds', sa.Integer(), nullable=False),
    sa.Column('max_per_day', sa.Integer(), nullable=True),
    sa.Column('ttl_seconds', sa.Integer(), nullable=False),
    sa.Column('enabled', sa.Boolean(), nullable=False),
    sa.Column('title', sa.String(length=255), nullable=True),
    sa.Column('message', sa.Text(), nullable=True),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_popup_rules_id'), 'popup_rules', ['id'], unique=False)
    op.create_index('idx_popup_rules_user_event', 'popup_rules', ['user_id', 'trigger_event_type'], unique=False)

    op.create_table('popups',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('user_id', sa.Integer(), nullable=False),
    sa.Column('reminder_id', sa.Integer(), nullable=True),
    sa.Column('contact_id', sa.Integer(), nullable=True),
    sa.Column('rule_id', sa.Integer(), nullable=True),
    sa.Column('rule_key', sa.String(length=100), nullable=False),
    sa.Column('source_event_id', sa.Integer(), nullable=True),
    sa.Column('template_type', sa.String(length=50), nullable=False),
    sa.Column('template_key', sa.String(length=50), nullable=False),
    sa.Column('title', sa.String(length=255), nullable=False),
    sa.Column('message', sa.Text(), nullable=False),
    sa.Column('affirmation', sa.Text(), nullable=True),
    sa.Column('priority', sa.Integer(), nullable=False),
    sa.Column('status', sa.String(length=20), nullable=False),
    sa.Column('queued_at', sa.DateTime(), nullable=False),
    sa.Column('displayed_at', sa.DateTime(), nullable=True),
    sa.Column('closed_at', sa.DateTime(), nullable=True),
    sa.Column('snooze_until', sa.DateTime(), nullable=True),
    sa.Column('expires_at', sa.DateTime(), nullable=True),
    sa.Column('action_taken', sa.String(length=30), nullable=True),
    sa.Column('payload', json_type, nullable=False),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_popups_id'), 'popups', ['id'], unique=False)
    op.create_index('idx_popups_user_status', 'popups', ['user_id', 'status'], unique=False)
    op.create_index('idx_popups_user_rule_key', 'popups', ['user_id', 'rule_key', 'queued_at'], unique=False)
    op.create_index('idx_popups_source_event', 'popups', ['user_id', 'source_event_id'], unique=False)

    op.create_table('popup_actions',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('popup_id', sa.Integer(), nullable=False),
    sa.Column('user_id', sa.Integer(), nullable=False),
    sa.Column('action_type', sa.String(length=30), nullable=False),
    sa.Column('action_data', json_type, nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.ForeignKeyConstraint(['popup_id'], ['popups.id'], ),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
    sa.PrimaryKeyConstraint('id')
    )

    op.create_table('snooze_history',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('user_id', sa.Integer(), nullable=False),
    sa.Column('reminder_id', sa.Integer(), nullable=True),
    sa.Column('duration_minutes', sa.Integer(), nullable=False),
    sa.Column('reason', sa.String(length=20), nullable=False),
    sa.Column('time_of_day', sa.Integer(), nullable=False),
    sa.Column('day_of_week', sa.Integer(), nullable=False),
    sa.Column('context_data', json_type, nullable=False),
    sa.Column('created_at', sa.DateTime(), nullable=False),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_snooze_history_user_created', 'snooze_history', ['user_id', 'created_at'], unique=False)

    op.create_table('affirmations',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('text', sa.Text(), nullable=False),
    sa.Column('category', sa.String(length=30), nullable=False),
    sa.Column('enabled', sa.Boolean(), nullable=False),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_affirmations_id'), 'affirmations', ['id'], unique=False)
    op.create_index(op.f('ix_affirmations_category'), 'affirmations', ['category'], unique=False)

    op.create_table('affirmation_usage',
    sa.Column('id', sa.Integer(), nullable=False),
    sa.Column('user_id', sa.Integer(), nullable=False),
    sa.Column('affirmation_id', sa.Integer(), nullable=False),
    sa.Column('category', sa.String(length=30), nullable=False),
    sa.Column('popup_id', sa.Integer(), nullable=True),
    sa.Column('shown_at', sa.DateTime(), nullable=False),
    sa.ForeignKeyConstraint(['affirmation_id'], ['affirmations.id'], ),
    sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_affirmation_usage_user_shown', 'affirmation_usage', ['user_id', 'shown_at'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('idx_affirmation_usage_user_shown', table_name='affirmation_usage')
    op.drop_table('affirmation_usage')
    op.drop_index(op.f('ix_affirmations_category'), table_name='affirmations')
    op.drop_index(op.f('ix_affirmations_id'), table_name='affirmations')
    op.drop_table('affirmations')
    op.drop_index('idx_snooze_history_user_created', table_name='snooze_history')
    op.drop_table('snooze_history')
    op.drop_table('popup_actions')
    op.drop_index('idx_popups_source_event', table_name='popups')
    op.drop_index('idx_popups_user_rule_key', table_name='popups')
    op.drop_index('idx_popups_user_status', table_name='popups')
    op.drop_index(op.f('ix_popups_id'), table_name='popups')
    op.drop_table('popups')
    op.drop_index('idx_popup_rules_user_event', table_name='popup_rules')
    op.drop_index(op.f('ix_popup_rules_id'), table_name='popup_rules')
    op.drop_table('popup_rules')
    op.drop_index('idx_events_reminder_id', table_name='events')
    op.drop_index('idx_events_user_type_created', table_name='events')
    op.drop_index(op.f('ix_events_id'), table_name='events')
    op.drop_table('events')
    op.drop_table('reminder_bundle_items')
    op.drop_index('idx_reminder_bundles_user_time', table_name='reminder_bundles')
    op.drop_index(op.f('ix_reminder_bundles_id'), table_name='reminder_bundles')
    op.drop_table('reminder_bundles')
    op.drop_table('reminder_cooldowns')
    op.drop_table('affirmation_preferences')
    op.drop_table('category_preferences')
    op.drop_table('snooze_preferences')
    op.drop_index('idx_reminders_user_id', table_name='reminders')
    op.drop_index('idx_reminders_status', table_name='reminders')
    op.drop_index(op.f('ix_reminders_id'), table_name='reminders')
    op.drop_table('reminders')
    op.drop_index(op.f('ix_contacts_user_id'), table_name='contacts')
    op.drop_index(op.f('ix_contacts_id'), table_name='contacts')
    op.drop_table('contacts')
    op.drop_index(op.f('ix_users_id'), table_name='users')
    op.drop_table('users')
