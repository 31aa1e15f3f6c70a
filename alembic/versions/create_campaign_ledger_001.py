"""Create campaign ledger tables

This migration adds:
1. users table (identity consumed from bearer tokens)
2. campaigns table
3. campaign_invitations table
4. campaign_negotiations table
5. campaign_budget_reservations table
6. campaign_participants table
7. campaign_deliverables and creator_submissions tables
8. deadline_reminders table
9. audit_logs, campaign_snapshots and system_health_logs tables
10. notifications table

Revision ID: create_campaign_ledger_001
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = 'create_campaign_ledger_001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # 1. Users
    op.create_table('users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255)),
        sa.Column('user_type', sa.Enum('brand', 'creator', 'admin', name='usertype'), server_default='brand'),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # 2. Campaigns
    op.create_table('campaigns',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('brand_user_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text),

        # Budget (cents)
        sa.Column('total_budget', sa.Integer, nullable=False, server_default='0'),
        sa.Column('allocated_budget', sa.Integer, nullable=False, server_default='0'),
        sa.Column('remaining_budget', sa.Integer, nullable=False, server_default='0'),
        sa.Column('influencer_count', sa.Integer, nullable=False, server_default='1'),
        sa.Column('base_payout_per_influencer', sa.Integer, server_default='0'),

        sa.Column('timeline_start', sa.Date),
        sa.Column('timeline_end', sa.Date),

        sa.Column('status', sa.Enum('draft', 'discovery', 'active', 'reviewing', 'completed', 'cancelled',
                                    name='campaignstatus'), nullable=False, server_default='draft'),
        sa.Column('status_changed_at', sa.DateTime),
        sa.Column('version', sa.Integer, nullable=False, server_default='1'),

        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_campaigns_brand_user_id', 'campaigns', ['brand_user_id'])
    op.create_index('idx_campaigns_status', 'campaigns', ['status'])

    # 3. Invitations
    op.create_table('campaign_invitations',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('campaign_id', sa.String(36), sa.ForeignKey('campaigns.id', ondelete='CASCADE'), nullable=False),
        sa.Column('creator_user_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),

        sa.Column('base_payout', sa.Integer, nullable=False, server_default='0'),
        sa.Column('offered_payout', sa.Integer, nullable=False, server_default='0'),
        sa.Column('negotiated_delta', sa.Integer),

        sa.Column('deliverables', sa.JSON),
        sa.Column('timeline_start', sa.Date),
        sa.Column('timeline_end', sa.Date),
        sa.Column('special_requirements', sa.Text),

        sa.Column('status', sa.Enum('pending', 'negotiating', 'accepted', 'declined', 'withdrawn',
                                    name='invitationstatus'), nullable=False, server_default='pending'),

        sa.Column('created_at', sa.DateTime),
        sa.Column('updated_at', sa.DateTime),
        sa.Column('responded_at', sa.DateTime),
        sa.UniqueConstraint('campaign_id', 'creator_user_id', name='uq_invitation_campaign_creator'),
    )
    op.create_index('ix_campaign_invitations_campaign_id', 'campaign_invitations', ['campaign_id'])
    op.create_index('ix_campaign_invitations_creator_user_id', 'campaign_invitations', ['creator_user_id'])

    # 4. Negotiations
    op.create_table('campaign_negotiations',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('invitation_id', sa.String(36), sa.ForeignKey('campaign_invitations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('sequence', sa.Integer, nullable=False, server_default='1'),
        sa.Column('proposed_by', sa.Enum('brand', 'creator', name='negotiationparty'), nullable=False),
        sa.Column('proposed_payout', sa.Integer),
        sa.Column('proposed_deliverables', sa.JSON),
        sa.Column('proposed_timeline_start', sa.Date),
        sa.Column('proposed_timeline_end', sa.Date),
        sa.Column('message', sa.Text),
        sa.Column('status', sa.Enum('pending', 'accepted', 'rejected', 'countered', name='negotiationstatus'),
                  nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime),
        sa.Column('responded_at', sa.DateTime),
    )
    op.create_index('ix_campaign_negotiations_invitation_id', 'campaign_negotiations', ['invitation_id'])

    # 5. Budget reservations
    op.create_table('campaign_budget_reservations',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('campaign_id', sa.String(36), sa.ForeignKey('campaigns.id', ondelete='CASCADE'), nullable=False),
        sa.Column('invitation_id', sa.String(36), sa.ForeignKey('campaign_invitations.id')),
        sa.Column('creator_user_id', sa.String(36), sa.ForeignKey('users.id')),
        sa.Column('reserved_amount', sa.Integer, nullable=False),
        sa.Column('reservation_status', sa.Enum('held', 'released', name='reservationstatus'),
                  nullable=False, server_default='held'),
        sa.Column('held_at', sa.DateTime),
        sa.Column('released_at', sa.DateTime),
        sa.Column('released_reason', sa.String(255)),
    )
    op.create_index('ix_campaign_budget_reservations_campaign_id', 'campaign_budget_reservations', ['campaign_id'])

    # 6. Participants
    op.create_table('campaign_participants',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('campaign_id', sa.String(36), sa.ForeignKey('campaigns.id', ondelete='CASCADE'), nullable=False),
        sa.Column('invitation_id', sa.String(36), sa.ForeignKey('campaign_invitations.id'), nullable=False, unique=True),
        sa.Column('creator_user_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('status', sa.Enum('active', 'completed', 'withdrawn', name='participantstatus'),
                  nullable=False, server_default='active'),
        sa.Column('final_payout', sa.Integer),
        sa.Column('joined_at', sa.DateTime),
        sa.Column('completed_at', sa.DateTime),
    )
    op.create_index('ix_campaign_participants_campaign_id', 'campaign_participants', ['campaign_id'])

    # 7. Deliverables & submissions
    op.create_table('campaign_deliverables',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('campaign_id', sa.String(36), sa.ForeignKey('campaigns.id', ondelete='CASCADE'), nullable=False),
        sa.Column('deliverable_index', sa.Integer, nullable=False, server_default='0'),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('deliverable_type', sa.String(50), nullable=False),
        sa.Column('description', sa.Text),
        sa.Column('required_by', sa.DateTime),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_campaign_deliverables_campaign_id', 'campaign_deliverables', ['campaign_id'])
    op.create_index('idx_deliverables_required_by', 'campaign_deliverables', ['required_by'])

    op.create_table('creator_submissions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('campaign_id', sa.String(36), sa.ForeignKey('campaigns.id', ondelete='CASCADE'), nullable=False),
        sa.Column('deliverable_id', sa.String(36), sa.ForeignKey('campaign_deliverables.id', ondelete='CASCADE'), nullable=False),
        sa.Column('creator_user_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('submission_url', sa.String(500), nullable=False),
        sa.Column('submission_type', sa.String(50), nullable=False, server_default='link'),
        sa.Column('status', sa.String(30), nullable=False, server_default='submitted'),
        sa.Column('submitted_at', sa.DateTime),
        sa.Column('updated_at', sa.DateTime),
    )
    op.create_index('ix_creator_submissions_deliverable_id', 'creator_submissions', ['deliverable_id'])

    # 8. Deadline reminders
    op.create_table('deadline_reminders',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('deliverable_id', sa.String(36), sa.ForeignKey('campaign_deliverables.id', ondelete='CASCADE'), nullable=False),
        sa.Column('creator_user_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('sent_at', sa.DateTime),
        sa.UniqueConstraint('deliverable_id', 'creator_user_id', name='uq_reminder_deliverable_creator'),
    )

    # 9. Audit, snapshots & health
    op.create_table('audit_logs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id')),
        sa.Column('action', sa.String(100), nullable=False),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', sa.String(36)),
        sa.Column('old_value', sa.JSON),
        sa.Column('new_value', sa.JSON),
        sa.Column('metadata_json', sa.JSON),
        sa.Column('created_at', sa.DateTime),
    )
    op.create_index('idx_audit_entity', 'audit_logs', ['entity_type', 'entity_id'])

    op.create_table('campaign_snapshots',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('campaign_id', sa.String(36), sa.ForeignKey('campaigns.id', ondelete='CASCADE'), nullable=False),
        sa.Column('snapshot_type', sa.Enum('completed', 'cancelled', name='snapshottype'), nullable=False),
        sa.Column('snapshot_data', sa.JSON, nullable=False),
        sa.Column('created_by', sa.String(36), sa.ForeignKey('users.id')),
        sa.Column('created_at', sa.DateTime),
    )
    op.create_index('ix_campaign_snapshots_campaign_id', 'campaign_snapshots', ['campaign_id'])

    op.create_table('system_health_logs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('event_type', sa.String(100), nullable=False),
        sa.Column('severity', sa.String(20), nullable=False, server_default='info'),
        sa.Column('message', sa.Text),
        sa.Column('metadata_json', sa.JSON),
        sa.Column('created_at', sa.DateTime),
    )

    # 10. Notifications
    op.create_table('notifications',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('message', sa.Text),
        sa.Column('action_url', sa.String(500)),
        sa.Column('data', sa.JSON),
        sa.Column('is_read', sa.Boolean, server_default=sa.false()),
        sa.Column('read_at', sa.DateTime),
        sa.Column('created_at', sa.DateTime),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])


def downgrade():
    op.drop_table('notifications')
    op.drop_table('system_health_logs')
    op.drop_table('campaign_snapshots')
    op.drop_table('audit_logs')
    op.drop_table('deadline_reminders')
    op.drop_table('creator_submissions')
    op.drop_table('campaign_deliverables')
    op.drop_table('campaign_participants')
    op.drop_table('campaign_budget_reservations')
    op.drop_table('campaign_negotiations')
    op.drop_table('campaign_invitations')
    op.drop_table('campaigns')
    op.drop_table('users')

    # Drop enums
    for enum_name in ('snapshottype', 'participantstatus', 'reservationstatus', 'negotiationstatus',
                      'negotiationparty', 'invitationstatus', 'campaignstatus', 'usertype'):
        op.execute(f"DROP TYPE IF EXISTS {enum_name}")
