"""Create ledger tables.

Revision ID: 001_initial_ledger
Revises: None
Create Date: 2025-02-01 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_initial_ledger'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create patient billing, ledger, payment and audit tables."""
    # Create patients table
    op.create_table(
        'patients',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('admission_date', sa.Date(), nullable=True),
        sa.Column('periodic_fee', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('advance_paid', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.CheckConstraint('periodic_fee >= 0', name='ck_patient_periodic_fee_non_negative'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_patients_status', 'patients', ['status'])

    # Create patient_charges table
    op.create_table(
        'patient_charges',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('patient_id', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(200), nullable=False),
        sa.Column('amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('charge_date', sa.Date(), nullable=True),
        sa.Column('cancelled', sa.Boolean(), nullable=False),
        sa.CheckConstraint('amount >= 0', name='ck_patient_charge_amount_non_negative'),
        sa.ForeignKeyConstraint(['patient_id'], ['patients.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_patient_charges_patient_id', 'patient_charges', ['patient_id'])
    op.create_index('idx_patient_charge_patient_cancelled', 'patient_charges', ['patient_id', 'cancelled'])

    # Create ledger_records table
    op.create_table(
        'ledger_records',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('patient_id', sa.Integer(), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('total_fees', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('total_paid', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('carry_forward_in', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('balance', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('month >= 1 AND month <= 12', name='ck_ledger_month_range'),
        sa.CheckConstraint('balance >= 0', name='ck_ledger_balance_non_negative'),
        sa.ForeignKeyConstraint(['patient_id'], ['patients.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('patient_id', 'month', 'year', name='uq_ledger_patient_period'),
    )
    op.create_index('idx_ledger_period', 'ledger_records', ['year', 'month'])

    # Create payment_events table
    op.create_table(
        'payment_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('patient_id', sa.Integer(), nullable=False),
        sa.Column('payment_date', sa.Date(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('payment_mode', sa.String(20), nullable=False),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.CheckConstraint('amount > 0', name='ck_payment_event_amount_positive'),
        sa.ForeignKeyConstraint(['patient_id'], ['patients.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_payment_event_patient_date', 'payment_events', ['patient_id', 'payment_date'])

    # Create carry_forwards table
    op.create_table(
        'carry_forwards',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('patient_id', sa.Integer(), nullable=False),
        sa.Column('source_month', sa.Integer(), nullable=False),
        sa.Column('source_year', sa.Integer(), nullable=False),
        sa.Column('target_month', sa.Integer(), nullable=False),
        sa.Column('target_year', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.ForeignKeyConstraint(['patient_id'], ['patients.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('patient_id', 'source_month', 'source_year', name='uq_carry_forward_source'),
    )
    op.create_index('idx_carry_forward_target', 'carry_forwards', ['patient_id', 'target_year', 'target_month'])
    op.create_index('idx_carry_forward_source_period', 'carry_forwards', ['source_year', 'source_month'])

    # Create audit_logs table
    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('entity_type', sa.String(), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('changes', sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )


def downgrade() -> None:
    """Drop ledger tables."""
    op.drop_table('audit_logs')
    op.drop_index('idx_carry_forward_source_period', table_name='carry_forwards')
    op.drop_index('idx_carry_forward_target', table_name='carry_forwards')
    op.drop_table('carry_forwards')
    op.drop_index('idx_payment_event_patient_date', table_name='payment_events')
    op.drop_table('payment_events')
    op.drop_index('idx_ledger_period', table_name='ledger_records')
    op.drop_table('ledger_records')
    op.drop_index('idx_patient_charge_patient_cancelled', table_name='patient_charges')
    op.drop_index('ix_patient_charges_patient_id', table_name='patient_charges')
    op.drop_table('patient_charges')
    op.drop_index('ix_patients_status', table_name='patients')
    op.drop_table('patients')
