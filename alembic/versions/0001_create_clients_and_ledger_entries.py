"""Create clients and ledger_entries tables.

Revision ID: 0001_clients_ledger
Revises:
Create Date: 2026-10-19

Initial schema: owner-scoped clients (unique normalized name per owner)
and the append-only ledger of credit sales and payments.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_clients_ledger'
down_revision = None
branch_labels = None
depends_on = None


ENTRY_ID = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade():
    op.create_table(
        'clients',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('owner_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('name_key', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('credit_limit', sa.Numeric(15, 2), nullable=True,
                  comment='NULL = sin límite'),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('deactivated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.Uuid(), nullable=False),
        sa.Column('updated_by', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('owner_id', 'name_key', name='uq_clients_owner_name_key'),
        sa.CheckConstraint('credit_limit IS NULL OR credit_limit >= 0', name='ck_clients_credit_limit_non_negative'),
    )
    op.create_index('ix_clients_owner_id', 'clients', ['owner_id'])
    op.create_index('ix_clients_name', 'clients', ['name'])
    op.create_index('ix_clients_active', 'clients', ['active'])

    op.create_table(
        'ledger_entries',
        sa.Column('id', ENTRY_ID, autoincrement=True, nullable=False),
        sa.Column('owner_id', sa.Uuid(), nullable=False),
        sa.Column('client_id', sa.Uuid(), nullable=False),
        sa.Column('kind', sa.Enum('CREDIT_SALE', 'PAYMENT', name='ledger_entry_kind'), nullable=False),
        sa.Column('amount', sa.Numeric(15, 2), nullable=False),
        sa.Column('description_or_method', sa.String(255), nullable=True),
        sa.Column('occurred_date', sa.Date(), nullable=False),
        sa.Column('occurred_time', sa.Time(), nullable=False),
        sa.Column('reverses_entry_id', ENTRY_ID, nullable=True),
        sa.Column('created_by', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['client_id'], ['clients.id']),
        sa.ForeignKeyConstraint(['reverses_entry_id'], ['ledger_entries.id']),
        sa.UniqueConstraint('reverses_entry_id'),
        sa.CheckConstraint('amount > 0', name='ck_ledger_entries_amount_positive'),
    )
    op.create_index('ix_ledger_entries_owner_id', 'ledger_entries', ['owner_id'])
    op.create_index('ix_ledger_entries_client_id', 'ledger_entries', ['client_id'])
    op.create_index('ix_ledger_entries_kind', 'ledger_entries', ['kind'])
    op.create_index('ix_ledger_entries_occurred_date', 'ledger_entries', ['occurred_date'])
    op.create_index(
        'idx_ledger_entries_client_chrono',
        'ledger_entries',
        ['client_id', 'occurred_date', 'occurred_time', 'id']
    )


def downgrade():
    op.drop_index('idx_ledger_entries_client_chrono', table_name='ledger_entries')
    op.drop_index('ix_ledger_entries_occurred_date', table_name='ledger_entries')
    op.drop_index('ix_ledger_entries_kind', table_name='ledger_entries')
    op.drop_index('ix_ledger_entries_client_id', table_name='ledger_entries')
    op.drop_index('ix_ledger_entries_owner_id', table_name='ledger_entries')
    op.drop_table('ledger_entries')

    op.drop_index('ix_clients_active', table_name='clients')
    op.drop_index('ix_clients_name', table_name='clients')
    op.drop_index('ix_clients_owner_id', table_name='clients')
    op.drop_table('clients')

    sa.Enum(name='ledger_entry_kind').drop(op.get_bind(), checkfirst=True)
