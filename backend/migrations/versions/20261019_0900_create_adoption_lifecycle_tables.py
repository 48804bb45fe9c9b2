"""Create adoption lifecycle tables.

Creates tables for:
- app_user: Minimal user rows referenced by pets and adoptions
- pet_record: Pet listing plus nomination / confirmation / rejection fields
- adoption_record: Finalized adoption fact (at most one per pet)
- favorite: User interest markers, cleared when a pet leaves the feed
- adoption_event: Append-only audit ledger of lifecycle transitions

Revision ID: 20261019_0900_create_adoption_lifecycle_tables
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID, JSONB

# revision identifiers, used by Alembic.
revision = '20261019_0900_create_adoption_lifecycle_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ==========================================================================
    # app_user
    # ==========================================================================
    op.create_table(
        'app_user',
        sa.Column('user_id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('display_name', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime, server_default=sa.text('NOW()'), nullable=False),
    )

    # ==========================================================================
    # pet_record - Listing and lifecycle fields
    # ==========================================================================
    op.create_table(
        'pet_record',
        sa.Column('pet_id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('owner_id', UUID(as_uuid=True), sa.ForeignKey('app_user.user_id'), nullable=False),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('status', sa.String(20), server_default='AVAILABLE', nullable=False),  # 'AVAILABLE', 'ADOPTED'

        # Nomination (tutor) and self-confirmation (adopter)
        sa.Column('pending_adopter_id', UUID(as_uuid=True), sa.ForeignKey('app_user.user_id'), nullable=True),
        sa.Column('marked_adopted_at', sa.DateTime, nullable=True),
        sa.Column('adopter_confirmed_at', sa.DateTime, nullable=True),

        # Platform decisions
        sa.Column('adoption_rejected_at', sa.DateTime, nullable=True),
        sa.Column('adoption_rejection_reason', sa.Text, nullable=True),
        sa.Column('adopet_confirmed_at', sa.DateTime, nullable=True),

        # Timestamps
        sa.Column('created_at', sa.DateTime, server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.DateTime, server_default=sa.text('NOW()'), nullable=False),
    )
    op.create_index('ix_pet_record_status', 'pet_record', ['status'])
    op.create_index('ix_pet_record_marked_adopted_at', 'pet_record', ['marked_adopted_at'])

    # ==========================================================================
    # adoption_record - One finalized adoption per pet
    # ==========================================================================
    op.create_table(
        'adoption_record',
        sa.Column('adoption_id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('pet_id', UUID(as_uuid=True), sa.ForeignKey('pet_record.pet_id'), nullable=False, unique=True),
        sa.Column('tutor_id', UUID(as_uuid=True), sa.ForeignKey('app_user.user_id'), nullable=False),
        sa.Column('adopter_id', UUID(as_uuid=True), sa.ForeignKey('app_user.user_id'), nullable=False),
        sa.Column('adopted_at', sa.DateTime, server_default=sa.text('NOW()'), nullable=False),
        sa.CheckConstraint('tutor_id <> adopter_id', name='ck_adoption_tutor_not_adopter'),
    )

    # ==========================================================================
    # favorite
    # ==========================================================================
    op.create_table(
        'favorite',
        sa.Column('favorite_id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('user_id', UUID(as_uuid=True), sa.ForeignKey('app_user.user_id'), nullable=False),
        sa.Column('pet_id', UUID(as_uuid=True), sa.ForeignKey('pet_record.pet_id'), nullable=False),
        sa.Column('created_at', sa.DateTime, server_default=sa.text('NOW()'), nullable=False),
        sa.UniqueConstraint('user_id', 'pet_id', name='uq_favorite_user_pet'),
    )

    # ==========================================================================
    # adoption_event - Audit ledger
    # ==========================================================================
    op.create_table(
        'adoption_event',
        sa.Column('event_id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('pet_id', UUID(as_uuid=True), sa.ForeignKey('pet_record.pet_id'), nullable=False),
        sa.Column('event_type', sa.String(100), nullable=False),
        sa.Column('actor_kind', sa.String(20), nullable=False),  # 'tutor', 'adopter', 'admin', 'system'
        sa.Column('actor_user_id', UUID(as_uuid=True), nullable=True),
        sa.Column('payload_json', JSONB, nullable=True),
        sa.Column('created_at', sa.DateTime, server_default=sa.text('NOW()'), nullable=False),
    )
    op.create_index('ix_adoption_event_pet', 'adoption_event', ['pet_id'])


def downgrade() -> None:
    op.drop_index('ix_adoption_event_pet', table_name='adoption_event')
    op.drop_table('adoption_event')
    op.drop_table('favorite')
    op.drop_table('adoption_record')
    op.drop_index('ix_pet_record_marked_adopted_at', table_name='pet_record')
    op.drop_index('ix_pet_record_status', table_name='pet_record')
    op.drop_table('pet_record')
    op.drop_table('app_user')
