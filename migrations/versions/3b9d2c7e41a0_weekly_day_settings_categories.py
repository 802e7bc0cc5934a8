"""weekly_day_settings: enabled_days to enabled_categories

Revision ID: 3b9d2c7e41a0
Revises:
Create Date: 2026-10-18 10:30:00.000000

"""
import logging

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from constants import DEFAULT_CATEGORIES_JSON
from services.categories import convert_all
from services.storage import row_to_record, update_categories


# revision identifiers, used by Alembic.
revision = '3b9d2c7e41a0'
down_revision = None
branch_labels = None
depends_on = None

logger = logging.getLogger('alembic.runtime.migration')

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    # Fresh install: create the table in its final shape
    if not inspector.has_table('weekly_day_settings'):
        op.create_table(
            'weekly_day_settings',
            sa.Column('id', sa.String(length=36), nullable=False),
            sa.Column('week_start_date', sa.Date(), nullable=False),
            sa.Column('enabled_days', JSON_TYPE, nullable=True),
            sa.Column('enabled_categories', JSON_TYPE, nullable=False,
                      server_default=DEFAULT_CATEGORIES_JSON),
            sa.Column('last_updated_by', sa.String(length=36), nullable=True),
            sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
            sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_weekly_day_settings_week_start_date'), 'weekly_day_settings',
                        ['week_start_date'], unique=True)
        return

    # Existing table: add the column without a default so legacy rows read as NULL
    columns = {col['name'] for col in inspector.get_columns('weekly_day_settings')}
    if 'enabled_categories' not in columns:
        op.add_column('weekly_day_settings', sa.Column('enabled_categories', JSON_TYPE, nullable=True))

    rows = bind.execute(sa.text('SELECT * FROM weekly_day_settings ORDER BY week_start_date')).mappings().all()
    converted = 0
    for result in convert_all([row_to_record(row) for row in rows]):
        if not result.ok:
            # Left for migrate-day-settings to report; the column stays NULL
            logger.warning(str(result.error))
            continue
        if result.changed:
            update_categories(bind, result.record)
            converted += 1
    logger.info(f"Converted {converted} of {len(rows)} weekly_day_settings rows")


def downgrade():
    bind = op.get_bind()
    columns = {col['name'] for col in sa.inspect(bind).get_columns('weekly_day_settings')}
    if 'enabled_days' in columns:
        with op.batch_alter_table('weekly_day_settings', schema=None) as batch_op:
            batch_op.drop_column('enabled_categories')
