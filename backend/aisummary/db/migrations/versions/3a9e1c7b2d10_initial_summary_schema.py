"""initial product / summary / sync log / installation job tables

Revision ID: 3a9e1c7b2d10
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '3a9e1c7b2d10'
down_revision = None
branch_labels = None
depends_on = None


JSON_DOC = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def upgrade() -> None:
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('shop', sa.String(length=255), nullable=False),
        sa.Column('shopify_product_id', sa.String(length=255), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('description_html', sa.Text(), nullable=True),
        sa.Column('handle', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=True),
        sa.Column('vendor', sa.String(length=255), nullable=True),
        sa.Column('product_type', sa.String(length=255), nullable=True),
        sa.Column('online_store_url', sa.Text(), nullable=True),
        sa.Column('tags', JSON_DOC, nullable=False),
        sa.Column('options', JSON_DOC, nullable=False),
        sa.Column('variants', JSON_DOC, nullable=False),
        sa.Column('images', JSON_DOC, nullable=False),
        sa.Column('featured_image', JSON_DOC, nullable=True),
        sa.Column('seo', JSON_DOC, nullable=True),
        sa.Column('price_range', JSON_DOC, nullable=True),
        sa.Column('total_inventory', sa.Integer(), nullable=True),
        sa.Column('shopify_created_at', sa.String(length=64), nullable=True),
        sa.Column('shopify_updated_at', sa.String(length=64), nullable=True),
        sa.Column('shopify_published_at', sa.String(length=64), nullable=True),
        sa.Column('synced_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('shop', 'shopify_product_id', name='ux_products_shop_product'),
    )
    op.create_index('idx_products_shop', 'products', ['shop'])

    op.create_table(
        'ai_summaries',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('shop', sa.String(length=255), nullable=False),
        sa.Column('shopify_product_id', sa.String(length=255), nullable=False),
        sa.Column('product_title', sa.Text(), nullable=True),
        sa.Column('original_title', sa.Text(), nullable=False),
        sa.Column('original_description', sa.Text(), nullable=False),
        sa.Column('enhanced_title', sa.Text(), nullable=False),
        sa.Column('enhanced_description', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('shop', 'shopify_product_id', name='ux_ai_summaries_shop_product'),
    )
    op.create_index('idx_ai_summaries_shop', 'ai_summaries', ['shop'])

    op.create_table(
        'sync_logs',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('shop', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('products_count', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('duration_ms', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('job_id', sa.String(length=255), nullable=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('idx_sync_logs_shop_ts', 'sync_logs', ['shop', 'timestamp'])

    op.create_table(
        'installation_jobs',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('job_id', sa.String(length=255), nullable=False),
        sa.Column('shop_url', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default=sa.text("'pending'")),
        sa.Column('total_products', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('products_processed', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('summaries_generated', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('progress_percentage', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('errors', JSON_DOC, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('job_id', name='uq_installation_jobs_job_id'),
    )
    op.create_index('idx_installation_jobs_shop_created', 'installation_jobs', ['shop_url', 'created_at'])


def downgrade() -> None:
    op.drop_index('idx_installation_jobs_shop_created', table_name='installation_jobs')
    op.drop_table('installation_jobs')
    op.drop_index('idx_sync_logs_shop_ts', table_name='sync_logs')
    op.drop_table('sync_logs')
    op.drop_index('idx_ai_summaries_shop', table_name='ai_summaries')
    op.drop_table('ai_summaries')
    op.drop_index('idx_products_shop', table_name='products')
    op.drop_table('products')
