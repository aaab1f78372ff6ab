"""baseline_schema

Revision ID: 6c1e0a7d4b21
Revises:
Create Date: 2026-10-12 09:14:27.318204

Production-safe migration: only creates tables that do not exist yet.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = '6c1e0a7d4b21'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def table_exists(table_name: str) -> bool:
    """Check if a table exists in the database."""
    bind = op.get_bind()
    inspector = inspect(bind)
    return table_name in inspector.get_table_names()


def _id():
    return sa.Column('id', sa.String(length=36), nullable=False)


def _timestamps(updated: bool = True):
    columns = [sa.Column('created_at', sa.DateTime(timezone=True), nullable=False)]
    if updated:
        columns.append(sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False))
    return columns


def upgrade() -> None:
    """
    Production-safe upgrade: only creates tables that do not exist yet, parents first.
    """
    if not table_exists('companies'):
        op.create_table('companies',
            _id(),
            sa.Column('name', sa.String(), nullable=False),
            sa.Column('slug', sa.String(), nullable=True),
            *_timestamps(updated=False),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_companies_slug'), 'companies', ['slug'], unique=True)

    if not table_exists('profiles'):
        op.create_table('profiles',
            _id(),
            sa.Column('company_id', sa.String(length=36), nullable=True),
            sa.Column('email', sa.String(), nullable=False),
            sa.Column('first_name', sa.String(), nullable=False),
            sa.Column('last_name', sa.String(), nullable=False),
            sa.Column('password_hash', sa.String(), nullable=True),
            sa.Column('role', sa.String(), nullable=False),
            *_timestamps(updated=False),
            sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_profiles_company_id'), 'profiles', ['company_id'], unique=False)
        op.create_index(op.f('ix_profiles_email'), 'profiles', ['email'], unique=True)

    if not table_exists('jobs'):
        op.create_table('jobs',
            _id(),
            sa.Column('company_id', sa.String(length=36), nullable=False),
            sa.Column('profile_id', sa.String(length=36), nullable=False),
            sa.Column('title', sa.String(), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('fields', sa.JSON(), nullable=True),
            *_timestamps(updated=False),
            sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
            sa.ForeignKeyConstraint(['profile_id'], ['profiles.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_jobs_company_id'), 'jobs', ['company_id'], unique=False)
        op.create_index(op.f('ix_jobs_profile_id'), 'jobs', ['profile_id'], unique=False)

    if not table_exists('candidates'):
        op.create_table('candidates',
            _id(),
            sa.Column('job_id', sa.String(length=36), nullable=False),
            sa.Column('first_name', sa.String(), nullable=False),
            sa.Column('last_name', sa.String(), nullable=False),
            sa.Column('email', sa.String(), nullable=True),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('is_completed', sa.Boolean(), nullable=False),
            sa.Column('current_step', sa.Integer(), nullable=False),
            sa.Column('total_steps', sa.Integer(), nullable=False),
            sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(['job_id'], ['jobs.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_candidates_job_id'), 'candidates', ['job_id'], unique=False)
        op.create_index(op.f('ix_candidates_email'), 'candidates', ['email'], unique=False)
        op.create_index(op.f('ix_candidates_status'), 'candidates', ['status'], unique=False)

    if not table_exists('candidate_responses'):
        op.create_table('candidate_responses',
            _id(),
            sa.Column('candidate_id', sa.String(length=36), nullable=False),
            sa.Column('question', sa.Text(), nullable=False),
            sa.Column('answer', sa.Text(), nullable=True),
            *_timestamps(updated=False),
            sa.ForeignKeyConstraint(['candidate_id'], ['candidates.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_candidate_responses_candidate_id'), 'candidate_responses', ['candidate_id'], unique=False)

    if not table_exists('candidate_resumes'):
        op.create_table('candidate_resumes',
            _id(),
            sa.Column('candidate_id', sa.String(length=36), nullable=False),
            sa.Column('original_filename', sa.String(), nullable=False),
            sa.Column('file_type', sa.String(), nullable=True),
            sa.Column('word_count', sa.Integer(), nullable=True),
            sa.Column('parsing_status', sa.String(), nullable=True),
            sa.Column('storage_path', sa.String(), nullable=True),
            *_timestamps(updated=False),
            sa.ForeignKeyConstraint(['candidate_id'], ['candidates.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('candidate_id')
        )

    if not table_exists('evaluations'):
        op.create_table('evaluations',
            _id(),
            sa.Column('candidate_id', sa.String(length=36), nullable=False),
            sa.Column('job_id', sa.String(length=36), nullable=False),
            sa.Column('overall_score', sa.Float(), nullable=False),
            sa.Column('overall_status', sa.String(), nullable=False),
            sa.Column('recommendation', sa.String(), nullable=False),
            sa.Column('summary', sa.Text(), nullable=True),
            sa.Column('explanation', sa.Text(), nullable=True),
            sa.Column('radar_metrics', sa.JSON(), nullable=True),
            sa.Column('category_scores', sa.JSON(), nullable=True),
            sa.Column('key_strengths', sa.JSON(), nullable=True),
            sa.Column('areas_for_improvement', sa.JSON(), nullable=True),
            sa.Column('red_flags', sa.JSON(), nullable=True),
            sa.Column('model', sa.String(), nullable=True),
            sa.Column('processing_duration_ms', sa.Integer(), nullable=True),
            *_timestamps(updated=False),
            sa.ForeignKeyConstraint(['candidate_id'], ['candidates.id'], ),
            sa.ForeignKeyConstraint(['job_id'], ['jobs.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('candidate_id')
        )
        op.create_index(op.f('ix_evaluations_job_id'), 'evaluations', ['job_id'], unique=False)

    if not table_exists('interviews'):
        op.create_table('interviews',
            _id(),
            sa.Column('application_id', sa.String(length=36), nullable=False),
            sa.Column('job_id', sa.String(length=36), nullable=False),
            sa.Column('date', sa.String(length=10), nullable=False),
            sa.Column('time', sa.String(length=8), nullable=False),
            sa.Column('timezone_id', sa.String(), nullable=False),
            sa.Column('duration', sa.Integer(), nullable=False),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('calendar_event_id', sa.String(), nullable=True),
            sa.Column('meet_link', sa.String(), nullable=True),
            sa.Column('notes', sa.Text(), nullable=True),
            sa.Column('reminder_sent_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('created_by', sa.String(length=36), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(['application_id'], ['candidates.id'], ),
            sa.ForeignKeyConstraint(['job_id'], ['jobs.id'], ),
            sa.ForeignKeyConstraint(['created_by'], ['profiles.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_interviews_application_id'), 'interviews', ['application_id'], unique=False)
        op.create_index(op.f('ix_interviews_job_id'), 'interviews', ['job_id'], unique=False)
        op.create_index(op.f('ix_interviews_status'), 'interviews', ['status'], unique=False)

    if not table_exists('contracts'):
        op.create_table('contracts',
            _id(),
            sa.Column('company_id', sa.String(length=36), nullable=False),
            sa.Column('title', sa.String(), nullable=False),
            sa.Column('body', sa.Text(), nullable=True),
            *_timestamps(updated=False),
            sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_contracts_company_id'), 'contracts', ['company_id'], unique=False)

    if not table_exists('contract_offers'):
        op.create_table('contract_offers',
            _id(),
            sa.Column('candidate_id', sa.String(length=36), nullable=False),
            sa.Column('contract_id', sa.String(length=36), nullable=False),
            sa.Column('company_id', sa.String(length=36), nullable=False),
            sa.Column('sent_by', sa.String(length=36), nullable=True),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('salary_amount', sa.Numeric(precision=12, scale=2), nullable=True),
            sa.Column('salary_currency', sa.String(length=3), nullable=True),
            sa.Column('start_date', sa.DateTime(timezone=True), nullable=True),
            sa.Column('end_date', sa.DateTime(timezone=True), nullable=True),
            sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('signed_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('rejected_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('canceled_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('rejection_reason', sa.Text(), nullable=True),
            sa.Column('signing_token', sa.String(), nullable=False),
            sa.Column('signature', sa.JSON(), nullable=True),
            sa.Column('signed_document_path', sa.String(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(['candidate_id'], ['candidates.id'], ),
            sa.ForeignKeyConstraint(['contract_id'], ['contracts.id'], ),
            sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
            sa.ForeignKeyConstraint(['sent_by'], ['profiles.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_contract_offers_candidate_id'), 'contract_offers', ['candidate_id'], unique=False)
        op.create_index(op.f('ix_contract_offers_company_id'), 'contract_offers', ['company_id'], unique=False)
        op.create_index(op.f('ix_contract_offers_status'), 'contract_offers', ['status'], unique=False)
        op.create_index(op.f('ix_contract_offers_signing_token'), 'contract_offers', ['signing_token'], unique=True)

    if not table_exists('integrations'):
        op.create_table('integrations',
            _id(),
            sa.Column('company_id', sa.String(length=36), nullable=False),
            sa.Column('user_id', sa.String(length=36), nullable=False),
            sa.Column('provider', sa.String(), nullable=False),
            sa.Column('access_token', sa.Text(), nullable=True),
            sa.Column('refresh_token', sa.Text(), nullable=True),
            sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('scope', sa.Text(), nullable=True),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('metadata', sa.JSON(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
            sa.ForeignKeyConstraint(['user_id'], ['profiles.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('user_id', 'provider', name='uq_integration_user_provider')
        )
        op.create_index(op.f('ix_integrations_company_id'), 'integrations', ['company_id'], unique=False)
        op.create_index(op.f('ix_integrations_user_id'), 'integrations', ['user_id'], unique=False)

    if not table_exists('invites'):
        op.create_table('invites',
            _id(),
            sa.Column('email', sa.String(), nullable=False),
            sa.Column('first_name', sa.String(), nullable=False),
            sa.Column('last_name', sa.String(), nullable=False),
            sa.Column('company_id', sa.String(length=36), nullable=False),
            sa.Column('role', sa.String(), nullable=False),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('invited_by', sa.String(length=36), nullable=True),
            sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
            *_timestamps(),
            sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
            sa.ForeignKeyConstraint(['invited_by'], ['profiles.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_invites_email'), 'invites', ['email'], unique=False)
        op.create_index(op.f('ix_invites_company_id'), 'invites', ['company_id'], unique=False)

    if not table_exists('subscriptions'):
        op.create_table('subscriptions',
            _id(),
            sa.Column('company_id', sa.String(length=36), nullable=False),
            sa.Column('user_id', sa.String(length=36), nullable=False),
            sa.Column('plan_id', sa.String(), nullable=False),
            sa.Column('status', sa.String(), nullable=False),
            sa.Column('current_period_start', sa.DateTime(timezone=True), nullable=True),
            sa.Column('current_period_end', sa.DateTime(timezone=True), nullable=True),
            sa.Column('trial_start', sa.DateTime(timezone=True), nullable=True),
            sa.Column('trial_end', sa.DateTime(timezone=True), nullable=True),
            sa.Column('cancel_at_period_end', sa.Boolean(), nullable=False),
            sa.Column('past_due_since', sa.DateTime(timezone=True), nullable=True),
            sa.Column('stripe_customer_id', sa.String(), nullable=True),
            sa.Column('stripe_subscription_id', sa.String(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(['company_id'], ['companies.id'], ),
            sa.ForeignKeyConstraint(['user_id'], ['profiles.id'], ),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_subscriptions_company_id'), 'subscriptions', ['company_id'], unique=False)
        op.create_index(op.f('ix_subscriptions_user_id'), 'subscriptions', ['user_id'], unique=False)
        op.create_index(op.f('ix_subscriptions_status'), 'subscriptions', ['status'], unique=False)
        op.create_index(op.f('ix_subscriptions_stripe_customer_id'), 'subscriptions', ['stripe_customer_id'], unique=False)
        op.create_index(op.f('ix_subscriptions_stripe_subscription_id'), 'subscriptions', ['stripe_subscription_id'], unique=True)

    if not table_exists('notification_preferences'):
        flags = [
            sa.Column(f'{channel}_{category}', sa.Boolean(), nullable=False)
            for channel in ('email', 'push', 'in_app')
            for category in ('job_applications', 'interview_scheduled', 'interview_reminders', 'candidate_updates', 'system_updates')
        ]
        op.create_table('notification_preferences',
            _id(),
            sa.Column('user_id', sa.String(length=36), nullable=False),
            sa.Column('email_enabled', sa.Boolean(), nullable=False),
            sa.Column('push_enabled', sa.Boolean(), nullable=False),
            sa.Column('in_app_enabled', sa.Boolean(), nullable=False),
            *flags,
            sa.Column('email_marketing', sa.Boolean(), nullable=False),
            sa.Column('email_digest_frequency', sa.String(), nullable=False),
            sa.Column('quiet_hours_start', sa.String(length=5), nullable=True),
            sa.Column('quiet_hours_end', sa.String(length=5), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(['user_id'], ['profiles.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('user_id')
        )

    if not table_exists('monitor_notifications'):
        op.create_table('monitor_notifications',
            _id(),
            sa.Column('subscription_id', sa.String(length=36), nullable=False),
            sa.Column('check_name', sa.String(), nullable=False),
            sa.Column('window_key', sa.String(), nullable=False),
            sa.Column('message_id', sa.String(), nullable=True),
            sa.Column('sent_at', sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(['subscription_id'], ['subscriptions.id'], ),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('subscription_id', 'check_name', 'window_key', name='uq_monitor_notification_window')
        )
        op.create_index(op.f('ix_monitor_notifications_subscription_id'), 'monitor_notifications', ['subscription_id'], unique=False)


def downgrade() -> None:
    """Drop every table, children first."""
    for table in (
        'monitor_notifications',
        'notification_preferences',
        'subscriptions',
        'invites',
        'integrations',
        'contract_offers',
        'contracts',
        'interviews',
        'evaluations',
        'candidate_resumes',
        'candidate_responses',
        'candidates',
        'jobs',
        'profiles',
        'companies',
    ):
        if table_exists(table):
            op.drop_table(table)
