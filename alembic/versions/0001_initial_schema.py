"""Esquema inicial: usuarios, pacientes, citas, ledger, abonos, solicitudes y actividades

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


userrole = postgresql.ENUM('admin', 'professional', 'financial', 'content_manager', name='userrole', create_type=False)
userstatus = postgresql.ENUM('active', 'inactive', name='userstatus', create_type=False)
patientstatus = postgresql.ENUM('active', 'pending', 'inactive', name='patientstatus', create_type=False)
sessionfrequency = postgresql.ENUM('weekly', 'biweekly', 'monthly', name='sessionfrequency', create_type=False)
appointmenttype = postgresql.ENUM('regular', 'first_time', 'emergency', name='appointmenttype', create_type=False)
appointmentstatus = postgresql.ENUM('scheduled', 'completed', 'cancelled', name='appointmentstatus', create_type=False)
ledgerentrykind = postgresql.ENUM('session', 'abono', name='ledgerentrykind', create_type=False)
requeststatus = postgresql.ENUM('pending', 'approved', 'rejected', name='requeststatus', create_type=False)
statusrequesttype = postgresql.ENUM('activation', 'status_change', name='statusrequesttype', create_type=False)

ALL_ENUMS = (
    userrole, userstatus, patientstatus, sessionfrequency, appointmenttype,
    appointmentstatus, ledgerentrykind, requeststatus, statusrequesttype,
)


def _timestamps(with_updated: bool = True) -> list[sa.Column]:
    columns = [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
    ]
    if with_updated:
        columns.append(
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True)
        )
    return columns


def _change_request_columns() -> list[sa.Column]:
    return [
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('patient_id', sa.UUID(), sa.ForeignKey('patients.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('professional_id', sa.UUID(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('status', requeststatus, nullable=False),
        sa.Column('admin_response', sa.Text(), nullable=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in ALL_ENUMS:
        enum_type.create(bind, checkfirst=True)

    # 1. users
    op.create_table(
        'users',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=150), nullable=False),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('role', userrole, nullable=False),
        sa.Column('status', userstatus, nullable=False),
        sa.Column('commission', sa.Numeric(precision=5, scale=2), server_default='0', nullable=False,
                  comment='Porcentaje (0-100) de cada sesión que corresponde al instituto'),
        sa.Column('saldo_total', sa.Numeric(precision=12, scale=2), server_default='0', nullable=False,
                  comment='Ingresos brutos acumulados por sesiones atendidas'),
        sa.Column('saldo_pendiente', sa.Numeric(precision=12, scale=2), server_default='0', nullable=False,
                  comment='Comisión adeudada al instituto, nunca negativa'),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # 2. patients
    op.create_table(
        'patients',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('email', sa.String(length=150), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', patientstatus, nullable=False),
        sa.Column('professional_id', sa.UUID(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('session_frequency', sessionfrequency, nullable=True),
        sa.Column('assigned_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('activated_at', sa.DateTime(timezone=True), nullable=True,
                  comment='Se setea cuando el admin aprueba una solicitud de activación'),
        sa.Column('active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_patients_professional_id', 'patients', ['professional_id'])

    # 3. appointments
    op.create_table(
        'appointments',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('patient_id', sa.UUID(), sa.ForeignKey('patients.id'), nullable=False),
        sa.Column('professional_id', sa.UUID(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('type', appointmenttype, nullable=False),
        sa.Column('status', appointmentstatus, nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('session_cost', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('attended', sa.Boolean(), nullable=True, comment='Solo tiene sentido con status=completed'),
        sa.Column('payment_amount', sa.Numeric(precision=12, scale=2), nullable=True,
                  comment='Monto cobrado en una sesión atendida'),
        sa.Column('no_show_payment_amount', sa.Numeric(precision=12, scale=2), nullable=True,
                  comment='Monto cobrado cuando el paciente no asistió'),
        sa.Column('remaining_balance', sa.Numeric(precision=12, scale=2), nullable=True,
                  comment='session_cost - cobrado; negativo = saldo a favor del paciente'),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_appointment_active_date_start', 'appointments', ['active', 'date', 'start_time'])
    op.create_index('idx_appointment_professional_active', 'appointments', ['professional_id', 'active'])
    op.create_index('idx_appointment_active_status_date', 'appointments', ['active', 'status', 'date'])

    # 4. abonos
    op.create_table(
        'abonos',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('professional_id', sa.UUID(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(with_updated=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_abono_professional_date', 'abonos', ['professional_id', 'date'])

    # 5. ledger_entries
    op.create_table(
        'ledger_entries',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('kind', ledgerentrykind, nullable=False),
        sa.Column('professional_id', sa.UUID(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('appointment_id', sa.UUID(), sa.ForeignKey('appointments.id'), nullable=True),
        sa.Column('abono_id', sa.UUID(), sa.ForeignKey('abonos.id'), nullable=True),
        sa.Column('gross_amount', sa.Numeric(precision=12, scale=2), nullable=False,
                  comment='Ingreso de la sesión o monto del abono'),
        sa.Column('commission_percent', sa.Numeric(precision=5, scale=2), nullable=True,
                  comment='Porcentaje aplicado al devengar (solo session)'),
        sa.Column('institute_share', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('professional_share', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('voided_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(with_updated=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_ledger_professional_occurred', 'ledger_entries', ['professional_id', 'occurred_at'])
    op.create_index('idx_ledger_appointment', 'ledger_entries', ['appointment_id'])

    # 6. status_requests / frequency_requests
    op.create_table(
        'status_requests',
        *_change_request_columns(),
        sa.Column('type', statusrequesttype, nullable=False),
        sa.Column('current_status', patientstatus, nullable=False),
        sa.Column('requested_status', patientstatus, nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_table(
        'frequency_requests',
        *_change_request_columns(),
        sa.Column('current_frequency', sessionfrequency, nullable=False),
        sa.Column('requested_frequency', sessionfrequency, nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    for table, short in (('status_requests', 'status'), ('frequency_requests', 'frequency')):
        op.create_index(
            f'uq_{table}_pending_patient', table, ['patient_id'],
            unique=True, postgresql_where=sa.text("status = 'pending'"),
        )
        op.create_index(f'idx_{short}_request_professional', table, ['professional_id', 'created_at'])

    # 7. activities
    op.create_table(
        'activities',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('type', sa.String(length=60), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('read', sa.Boolean(), nullable=False),
        sa.Column('metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=True,
                  comment='patientId, professionalId, reason, etc.'),
        sa.Column('patient_id', sa.UUID(), sa.ForeignKey('patients.id', ondelete='SET NULL'), nullable=True),
        sa.Column('professional_id', sa.UUID(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        *_timestamps(with_updated=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_activity_type_occurred', 'activities', ['type', 'occurred_at'])


def downgrade() -> None:
    op.drop_table('activities')
    op.drop_table('frequency_requests')
    op.drop_table('status_requests')
    op.drop_table('ledger_entries')
    op.drop_table('abonos')
    op.drop_table('appointments')
    op.drop_table('patients')
    op.drop_table('users')

    bind = op.get_bind()
    for enum_type in reversed(ALL_ENUMS):
        enum_type.drop(bind, checkfirst=True)
