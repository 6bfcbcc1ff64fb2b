"""initial_schema

Revision ID: 3a7c1e9d2b40
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3a7c1e9d2b40'
down_revision = None
branch_labels = None
depends_on = None

TIMEFRAMES = ('M10', 'M15', 'M30', 'H1', 'H2', 'H4', 'H8', 'W1', 'MN1', 'DAILY')


def _timeframe():
    return sa.Enum(*TIMEFRAMES, name='timeframe')


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('username', sa.String(100), nullable=False),
        sa.Column('hashed_password', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=True),
        sa.Column('role', sa.String(50), nullable=False, server_default='user'),
        sa.Column('is_active', sa.Boolean(), nullable=True, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_username', 'users', ['username'], unique=True)

    op.create_table(
        'user_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('weekly_reports', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('monthly_reports', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('quarterly_reports', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('yearly_reports', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('email_project_updates', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_user_settings_id', 'user_settings', ['id'])
    op.create_index('ix_user_settings_user_id', 'user_settings', ['user_id'], unique=True)

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(100), nullable=False),
        sa.Column('entity_type', sa.String(50), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_audit_logs_id', 'audit_logs', ['id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_user_id', 'audit_logs', ['user_id'])
    op.create_index('ix_audit_logs_created_at', 'audit_logs', ['created_at'])

    op.create_table(
        'trades',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('currency_pair', sa.String(10), nullable=False),
        sa.Column('trade_type', sa.Enum('LONG', 'SHORT', name='tradetype'), nullable=False),
        sa.Column('status', sa.Enum('OPEN', 'CLOSED', name='tradestatus'), nullable=False),
        sa.Column('entry_price', sa.Float(), nullable=False),
        sa.Column('exit_price', sa.Float(), nullable=True),
        sa.Column('stop_loss', sa.Float(), nullable=True),
        sa.Column('take_profit', sa.Float(), nullable=True),
        sa.Column('lot_size', sa.Float(), nullable=False),
        sa.Column('pips', sa.Float(), nullable=True),
        sa.Column('profit_loss', sa.Float(), nullable=True),
        sa.Column('currency', sa.String(4), nullable=False, server_default='AUD'),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('entry_time', sa.Time(), nullable=True),
        sa.Column('exit_time', sa.Time(), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_trades_id', 'trades', ['id'])
    op.create_index('ix_trades_user_id', 'trades', ['user_id'])
    op.create_index('ix_trades_currency_pair', 'trades', ['currency_pair'])
    op.create_index('ix_trades_date', 'trades', ['date'])

    op.create_table(
        'top_down_analyses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('currency_pair', sa.String(10), nullable=False),
        sa.Column('analysis_date', sa.Date(), nullable=False),
        sa.Column('analysis_time', sa.Time(), nullable=True),
        sa.Column('status', sa.Enum('DRAFT', 'COMPLETED', 'ARCHIVED', name='analysisstatus'), nullable=False),
        sa.Column('overall_probability', sa.Float(), nullable=True),
        sa.Column('trade_recommendation', sa.Enum('LONG', 'SHORT', 'NEUTRAL', 'AVOID', name='traderecommendation'), nullable=True),
        sa.Column('confidence_level', sa.Float(), nullable=True),
        sa.Column('risk_level', sa.Enum('LOW', 'MEDIUM', 'HIGH', name='risklevel'), nullable=True),
        sa.Column('ai_summary', sa.Text(), nullable=True),
        sa.Column('ai_reasoning', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('archived_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_top_down_analyses_id', 'top_down_analyses', ['id'])
    op.create_index('ix_top_down_analyses_user_id', 'top_down_analyses', ['user_id'])
    op.create_index('ix_top_down_analyses_currency_pair', 'top_down_analyses', ['currency_pair'])
    op.create_index('ix_top_down_analyses_status', 'top_down_analyses', ['status'])
    op.create_index('ix_top_down_analyses_created_at', 'top_down_analyses', ['created_at'])

    op.create_table(
        'tda_analysis_history',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('analysis_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.Enum('CREATED', 'UPDATED', 'COMPLETED', 'ARCHIVED', name='historyaction'), nullable=False),
        sa.Column('changes', sa.JSON(), nullable=True),
        sa.Column('performed_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['analysis_id'], ['top_down_analyses.id']),
        sa.ForeignKeyConstraint(['performed_by'], ['users.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_tda_analysis_history_id', 'tda_analysis_history', ['id'])
    op.create_index('ix_tda_analysis_history_analysis_id', 'tda_analysis_history', ['analysis_id'])

    op.create_table(
        'tda_timeframe_analyses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('analysis_id', sa.Integer(), nullable=False),
        sa.Column('timeframe', _timeframe(), nullable=False),
        sa.Column('timeframe_sentiment', sa.Enum('BULLISH', 'BEARISH', 'NEUTRAL', name='sentiment'), nullable=False),
        sa.Column('timeframe_probability', sa.Float(), nullable=False, server_default='50'),
        sa.Column('timeframe_strength', sa.Float(), nullable=False, server_default='0'),
        sa.Column('analysis_data', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['analysis_id'], ['top_down_analyses.id']),
        sa.UniqueConstraint('analysis_id', 'timeframe', name='uq_tda_timeframe_analyses_analysis_timeframe'),
    )
    op.create_index('ix_tda_timeframe_analyses_id', 'tda_timeframe_analyses', ['id'])
    op.create_index('ix_tda_timeframe_analyses_analysis_id', 'tda_timeframe_analyses', ['analysis_id'])

    op.create_table(
        'tda_questions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('timeframe', _timeframe(), nullable=False),
        sa.Column('question_text', sa.Text(), nullable=False),
        sa.Column('question_type', sa.Enum('TEXT', 'MULTIPLE_CHOICE', 'RATING', 'BOOLEAN', 'ANNOUNCEMENTS', name='questiontype'), nullable=False),
        sa.Column('options', sa.JSON(), nullable=True),
        sa.Column('required', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('order_index', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('timeframe', 'order_index', 'version', name='uq_tda_questions_timeframe_order_version'),
    )
    op.create_index('ix_tda_questions_id', 'tda_questions', ['id'])
    op.create_index('ix_tda_questions_timeframe', 'tda_questions', ['timeframe'])
    op.create_index('ix_tda_questions_is_active', 'tda_questions', ['is_active'])

    op.create_table(
        'tda_answers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('analysis_id', sa.Integer(), nullable=False),
        sa.Column('question_id', sa.Integer(), nullable=False),
        sa.Column('answer_text', sa.Text(), nullable=True),
        sa.Column('answer_value', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['analysis_id'], ['top_down_analyses.id']),
        sa.ForeignKeyConstraint(['question_id'], ['tda_questions.id']),
        sa.UniqueConstraint('analysis_id', 'question_id', name='uq_tda_answers_analysis_question'),
    )
    op.create_index('ix_tda_answers_id', 'tda_answers', ['id'])
    op.create_index('ix_tda_answers_analysis_id', 'tda_answers', ['analysis_id'])
    op.create_index('ix_tda_answers_question_id', 'tda_answers', ['question_id'])

    op.create_table(
        'tda_screenshots',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('analysis_id', sa.Integer(), nullable=False),
        sa.Column('timeframe', _timeframe(), nullable=False),
        sa.Column('file_url', sa.String(1000), nullable=False),
        sa.Column('file_name', sa.String(255), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['analysis_id'], ['top_down_analyses.id']),
    )
    op.create_index('ix_tda_screenshots_id', 'tda_screenshots', ['id'])
    op.create_index('ix_tda_screenshots_analysis_id', 'tda_screenshots', ['analysis_id'])

    op.create_table(
        'tda_announcements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('analysis_id', sa.Integer(), nullable=False),
        sa.Column('timeframe', _timeframe(), nullable=False),
        sa.Column('time', sa.String(20), nullable=False),
        sa.Column('announcement_type', sa.String(255), nullable=False),
        sa.Column('impact', sa.Enum('LOW', 'MEDIUM', 'HIGH', name='announcementimpact'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['analysis_id'], ['top_down_analyses.id']),
    )
    op.create_index('ix_tda_announcements_id', 'tda_announcements', ['id'])
    op.create_index('ix_tda_announcements_analysis_id', 'tda_announcements', ['analysis_id'])

    op.create_table(
        'messages',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sender_id', sa.Integer(), nullable=False),
        sa.Column('receiver_id', sa.Integer(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('message_type', sa.String(20), nullable=False, server_default='text'),
        sa.Column('file_url', sa.String(1000), nullable=True),
        sa.Column('file_name', sa.String(255), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['sender_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['receiver_id'], ['users.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_messages_id', 'messages', ['id'])
    op.create_index('ix_messages_sender_id', 'messages', ['sender_id'])
    op.create_index('ix_messages_receiver_id', 'messages', ['receiver_id'])
    op.create_index('ix_messages_is_read', 'messages', ['is_read'])
    op.create_index('ix_messages_created_at', 'messages', ['created_at'])


def downgrade() -> None:
    for table in (
        'messages',
        'tda_announcements',
        'tda_screenshots',
        'tda_answers',
        'tda_questions',
        'tda_timeframe_analyses',
        'tda_analysis_history',
        'top_down_analyses',
        'trades',
        'audit_logs',
        'user_settings',
        'users',
    ):
        op.drop_table(table)
