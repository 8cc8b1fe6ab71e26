from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3f1c2a7b9d40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'universities',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(length=32), nullable=False, unique=True),
        sa.Column('name', sa.String(length=255), nullable=False, index=True),
        sa.Column('prefecture', sa.String(length=50), nullable=True),
        sa.Column('type', sa.String(length=20), nullable=True),
        sa.Column('capacity', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.current_timestamp(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.current_timestamp(), nullable=False),
    )

    op.create_table(
        'university_campuses',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('university_code', sa.String(length=32), nullable=False, index=True),
        sa.Column('campus_name', sa.String(length=255), nullable=False),
        sa.Column('university_name', sa.String(length=255), nullable=True),
        sa.Column('prefecture', sa.String(length=50), nullable=True),
        sa.Column('city', sa.String(length=100), nullable=True),
        sa.Column('postal_code', sa.String(length=16), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('office_code', sa.String(length=32), nullable=True),
        sa.Column('office_name', sa.String(length=100), nullable=True),
        sa.Column('class10_code', sa.String(length=32), nullable=True),
        sa.Column('class10_name', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.current_timestamp(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.current_timestamp(), nullable=False),
        sa.UniqueConstraint('university_code', 'campus_name', name='uq_university_campus'),
    )

    op.create_table(
        'calendars',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('fiscal_year', sa.Integer(), nullable=False, index=True),
        sa.Column('university_code', sa.String(length=32), nullable=True, index=True),
        sa.Column('fiscal_start', sa.Date(), nullable=False),
        sa.Column('fiscal_end', sa.Date(), nullable=False),
        sa.Column('download_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('creator_id', sa.String(length=128), nullable=True),
        sa.Column('is_publishable', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('memo', sa.Text(), nullable=False),
        sa.Column('input_information', sa.Text(), nullable=False),
        sa.Column('disable_saturday', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.current_timestamp(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.current_timestamp(), nullable=False),
        sa.UniqueConstraint('university_code', 'fiscal_year', 'name', name='uq_calendar_university_year_name'),
    )

    op.create_table(
        'calendar_terms',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('calendar_id', sa.Integer(), sa.ForeignKey('calendars.id'), nullable=False, index=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('order', sa.Integer(), nullable=True),
        sa.Column('short_name', sa.String(length=50), nullable=True),
        sa.Column('class_count', sa.Integer(), nullable=True),
        sa.Column('holiday_flag', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.current_timestamp(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.current_timestamp(), nullable=False),
        sa.UniqueConstraint('calendar_id', 'name', name='uq_calendar_term_name'),
    )

    op.create_table(
        'calendar_days',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('calendar_id', sa.Integer(), sa.ForeignKey('calendars.id'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('term_id', sa.Integer(), sa.ForeignKey('calendar_terms.id'), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_holiday', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('national_holiday_name', sa.String(length=100), nullable=True),
        sa.Column('class_weekday', sa.Integer(), nullable=True),
        sa.Column('class_order', sa.Integer(), nullable=True),
        sa.Column('notification_reasons', sa.String(length=32), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.current_timestamp(), nullable=False),
        sa.UniqueConstraint('calendar_id', 'date', name='uq_calendar_day_date'),
    )
    op.create_index('ix_calendar_days_calendar_type', 'calendar_days', ['calendar_id', 'type'])

    op.create_table(
        'holiday_cache',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('fiscal_year', sa.Integer(), nullable=False, unique=True),
        sa.Column('holidays', sa.JSON(), nullable=False),
        sa.Column('fetched_at', sa.DateTime(), nullable=False),
    )


def downgrade():
    op.drop_table('holiday_cache')
    op.drop_index('ix_calendar_days_calendar_type', table_name='calendar_days')
    op.drop_table('calendar_days')
    op.drop_table('calendar_terms')
    op.drop_table('calendars')
    op.drop_table('university_campuses')
    op.drop_table('universities')
