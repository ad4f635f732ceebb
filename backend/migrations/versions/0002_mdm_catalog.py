"""product, geography, catalog, dictionary, job and outbox tables

Revision ID: 0002_mdm_catalog
Revises: 0001_initial_authz
Create Date: 2026-09-02
"""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

revision = '0002_mdm_catalog'
down_revision = '0001_initial_authz'
branch_labels = None
depends_on = None

NOW = sa.text('CURRENT_TIMESTAMP')

TABLES = ['outbox', 'workflow_jobs', 'background_jobs', 'data_dictionary', 'catalog_products', 'catalogs',
          'channels', 'currencies', 'locales', 'country_compliance', 'countries', 'regions', 'product_cache',
          'products']


def upgrade():
    bind = op.get_bind()
    insp = inspect(bind)

    if not insp.has_table('products'):
        op.create_table('products',
            sa.Column('id', sa.String(length=36), primary_key=True),
            sa.Column('sku', sa.String(length=64), nullable=False, unique=True),
            sa.Column('name', sa.String(length=255), nullable=False),
            sa.Column('description', sa.Text()),
            sa.Column('long_description', sa.Text()),
            sa.Column('type', sa.String(length=64)),
            sa.Column('product_class', sa.String(length=64)),
            sa.Column('subtype', sa.String(length=64)),
            sa.Column('base_price', sa.Float(), nullable=False, server_default='0'),
            sa.Column('cost_price', sa.Float()),
            sa.Column('available', sa.Boolean(), server_default=sa.text('1')),
            sa.Column('web_display', sa.Boolean(), server_default=sa.text('0')),
            sa.Column('license_required', sa.Boolean(), server_default=sa.text('0')),
            sa.Column('contract_item', sa.Boolean(), server_default=sa.text('0')),
            sa.Column('seat_based_pricing', sa.Boolean(), server_default=sa.text('0')),
            sa.Column('can_be_fulfilled', sa.Boolean(), server_default=sa.text('1')),
            sa.Column('ava_tax_code', sa.String(length=32)),
            sa.Column('slug', sa.String(length=255)),
            sa.Column('status', sa.String(length=16), nullable=False, server_default='draft'),
            sa.Column('created_by', sa.Integer()),
            sa.Column('updated_by', sa.Integer()),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW),
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=NOW)
        )
        op.create_index('ix_products_sku', 'products', ['sku'])
        op.create_index('ix_products_name', 'products', ['name'])
        op.create_index('ix_products_type', 'products', ['type'])
        op.create_index('ix_products_status', 'products', ['status'])

    if not insp.has_table('product_cache'):
        op.create_table('product_cache',
            sa.Column('product_id', sa.String(length=36), primary_key=True),
            sa.Column('sku', sa.String(length=64), nullable=False),
            sa.Column('status', sa.String(length=16), nullable=False),
            sa.Column('payload', sa.JSON(), nullable=False),
            sa.Column('synced_at', sa.DateTime(timezone=True), server_default=NOW)
        )
        op.create_index('ix_product_cache_sku', 'product_cache', ['sku'])

    if not insp.has_table('regions'):
        op.create_table('regions',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('code', sa.String(length=16), nullable=False, unique=True),
            sa.Column('name', sa.String(length=128), nullable=False),
            sa.Column('description', sa.Text()),
            sa.Column('is_active', sa.Boolean(), server_default=sa.text('1')),
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=NOW)
        )

    if not insp.has_table('countries'):
        op.create_table('countries',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('code', sa.String(length=8), nullable=False, unique=True),
            sa.Column('name', sa.String(length=128), nullable=False),
            sa.Column('native_name', sa.String(length=128)),
            sa.Column('region_id', sa.Integer(), sa.ForeignKey('regions.id', ondelete='CASCADE'), nullable=False),
            sa.Column('default_locale_id', sa.Integer()),
            sa.Column('continent', sa.String(length=32)),
            sa.Column('phone_prefix', sa.String(length=8)),
            sa.Column('supports_shipping', sa.Boolean(), server_default=sa.text('1')),
            sa.Column('supports_billing', sa.Boolean(), server_default=sa.text('1')),
            sa.Column('is_active', sa.Boolean(), server_default=sa.text('1')),
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=NOW)
        )
        op.create_index('ix_countries_region', 'countries', ['region_id'])

    if not insp.has_table('country_compliance'):
        op.create_table('country_compliance',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('country_id', sa.Integer(), sa.ForeignKey('countries.id', ondelete='CASCADE'),
                      nullable=False, unique=True),
            sa.Column('has_trade_sanctions', sa.Boolean(), server_default=sa.text('0')),
            sa.Column('has_export_restrictions', sa.Boolean(), server_default=sa.text('0')),
            sa.Column('requires_export_license', sa.Boolean(), server_default=sa.text('0')),
            sa.Column('compliance_risk_level', sa.String(length=16), server_default='Low'),
            sa.Column('regulatory_notes', sa.Text()),
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=NOW)
        )

    if not insp.has_table('locales'):
        op.create_table('locales',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('code', sa.String(length=32), nullable=False, unique=True),
            sa.Column('name', sa.String(length=128), nullable=False),
            sa.Column('native_name', sa.String(length=128)),
            sa.Column('language_code', sa.String(length=8), nullable=False),
            sa.Column('country_code', sa.String(length=8)),
            sa.Column('country_id', sa.Integer(), sa.ForeignKey('countries.id', ondelete='CASCADE'), nullable=False),
            sa.Column('region_id', sa.Integer(), sa.ForeignKey('regions.id')),
            sa.Column('currency', sa.String(length=3), server_default='USD'),
            sa.Column('is_rtl', sa.Boolean(), server_default=sa.text('0')),
            sa.Column('date_format', sa.String(length=32), server_default='MM/dd/yyyy'),
            sa.Column('number_format', sa.JSON(), nullable=True),
            sa.Column('priority_in_country', sa.Integer(), server_default='100'),
            sa.Column('is_active', sa.Boolean(), server_default=sa.text('1')),
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=NOW)
        )
        op.create_index('ix_locales_country', 'locales', ['country_id'])

    if not insp.has_table('currencies'):
        op.create_table('currencies',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('code', sa.String(length=3), nullable=False, unique=True),
            sa.Column('name', sa.String(length=64), nullable=False),
            sa.Column('symbol', sa.String(length=8)),
            sa.Column('is_active', sa.Boolean(), server_default=sa.text('1'))
        )

    if not insp.has_table('channels'):
        op.create_table('channels',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('code', sa.String(length=32), nullable=False, unique=True),
            sa.Column('name', sa.String(length=128), nullable=False),
            sa.Column('description', sa.Text()),
            sa.Column('is_active', sa.Boolean(), server_default=sa.text('1')),
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=NOW)
        )

    if not insp.has_table('catalogs'):
        op.create_table('catalogs',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('code', sa.String(length=64), nullable=False),
            sa.Column('name', sa.String(length=255), nullable=False),
            sa.Column('description', sa.Text()),
            sa.Column('region_id', sa.Integer(), sa.ForeignKey('regions.id')),
            sa.Column('channel_id', sa.Integer(), sa.ForeignKey('channels.id')),
            sa.Column('currency_id', sa.Integer(), sa.ForeignKey('currencies.id')),
            sa.Column('effective_from', sa.DateTime(timezone=True)),
            sa.Column('effective_to', sa.DateTime(timezone=True)),
            sa.Column('priority', sa.Integer(), server_default='1'),
            sa.Column('status', sa.String(length=16), server_default='active'),
            sa.Column('is_active', sa.Boolean(), server_default=sa.text('1')),
            sa.Column('is_default', sa.Boolean(), server_default=sa.text('0')),
            sa.Column('created_by', sa.Integer()),
            sa.Column('updated_by', sa.Integer()),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW),
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=NOW)
        )
        with op.batch_alter_table('catalogs') as batch_op:
            batch_op.create_unique_constraint('uq_catalog_code_scope', ['code', 'region_id', 'channel_id'])
        op.create_index('ix_catalogs_code', 'catalogs', ['code'])
        op.create_index('ix_catalogs_status', 'catalogs', ['status'])

    if not insp.has_table('catalog_products'):
        op.create_table('catalog_products',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('catalog_id', sa.Integer(), sa.ForeignKey('catalogs.id', ondelete='CASCADE'), nullable=False),
            sa.Column('product_id', sa.String(length=36), sa.ForeignKey('products.id', ondelete='CASCADE'),
                      nullable=False),
            sa.Column('is_active', sa.Boolean(), server_default=sa.text('1')),
            sa.Column('pricing_mode', sa.String(length=16), nullable=False, server_default='none'),
            sa.Column('override_price', sa.Float()),
            sa.Column('discount_percentage', sa.Float(), nullable=False, server_default='0'),
            sa.Column('is_featured', sa.Boolean(), server_default=sa.text('0')),
            sa.Column('min_quantity', sa.Integer()),
            sa.Column('max_quantity', sa.Integer()),
            sa.Column('fulfillment_method', sa.String(length=32)),
            sa.Column('support_level', sa.String(length=32)),
            sa.Column('custom_name', sa.String(length=255)),
            sa.Column('local_sku_code', sa.String(length=64)),
            sa.Column('product_sku', sa.String(length=64)),
            sa.Column('product_name', sa.String(length=255)),
            sa.Column('product_base_price', sa.Float()),
            sa.Column('locale_workflow_status', sa.String(length=32)),
            sa.Column('content_workflow_status', sa.String(length=32)),
            sa.Column('localized_content_count', sa.Integer(), server_default='0'),
            sa.Column('created_by', sa.Integer()),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW),
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=NOW)
        )
        with op.batch_alter_table('catalog_products') as batch_op:
            batch_op.create_unique_constraint('uq_catalog_product', ['catalog_id', 'product_id'])
        op.create_index('ix_catalog_products_catalog', 'catalog_products', ['catalog_id'])
        op.create_index('ix_catalog_products_product', 'catalog_products', ['product_id'])

    if not insp.has_table('data_dictionary'):
        op.create_table('data_dictionary',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('column_name', sa.String(length=128), nullable=False, unique=True),
            sa.Column('display_name', sa.String(length=255), nullable=False),
            sa.Column('data_type', sa.String(length=32), nullable=False, server_default='string'),
            sa.Column('description', sa.Text()),
            sa.Column('category', sa.String(length=64)),
            sa.Column('required_for_active', sa.Boolean(), server_default=sa.text('0')),
            sa.Column('max_length', sa.Integer()),
            sa.Column('min_length', sa.Integer()),
            sa.Column('validation_pattern', sa.String(length=512)),
            sa.Column('allowed_values', sa.JSON(), nullable=True),
            sa.Column('maintenance_role', sa.String(length=64), server_default='system'),
            sa.Column('in_product_mdm', sa.Boolean(), server_default=sa.text('0')),
            sa.Column('in_pricing_mdm', sa.Boolean(), server_default=sa.text('0')),
            sa.Column('in_ecommerce', sa.Boolean(), server_default=sa.text('0')),
            sa.Column('sort_order', sa.Integer(), server_default='0'),
            sa.Column('is_system_field', sa.Boolean(), server_default=sa.text('0')),
            sa.Column('is_editable', sa.Boolean(), server_default=sa.text('1')),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW),
            sa.Column('updated_at', sa.DateTime(timezone=True), server_default=NOW)
        )
        op.create_index('ix_data_dictionary_category', 'data_dictionary', ['category'])

    if not insp.has_table('background_jobs'):
        op.create_table('background_jobs',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('type', sa.String(length=64), nullable=False),
            sa.Column('status', sa.String(length=16), nullable=False, server_default='Pending'),
            sa.Column('entity_id', sa.String(length=64)),
            sa.Column('entity_type', sa.String(length=64)),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW),
            sa.Column('started_at', sa.DateTime(timezone=True)),
            sa.Column('completed_at', sa.DateTime(timezone=True)),
            sa.Column('error_message', sa.Text()),
            sa.Column('result', sa.JSON(), nullable=True),
            sa.Column('retry_count', sa.Integer(), server_default='0'),
            sa.Column('max_retries', sa.Integer(), server_default='3'),
            sa.Column('created_by', sa.String(length=128))
        )
        op.create_index('ix_background_jobs_status', 'background_jobs', ['status'])
        op.create_index('ix_background_jobs_entity', 'background_jobs', ['entity_id'])

    if not insp.has_table('workflow_jobs'):
        op.create_table('workflow_jobs',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('job_name', sa.String(length=255), nullable=False),
            sa.Column('job_type', sa.String(length=64), nullable=False),
            sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
            sa.Column('total_items', sa.Integer(), server_default='0'),
            sa.Column('completed_items', sa.Integer(), server_default='0'),
            sa.Column('failed_items', sa.Integer(), server_default='0'),
            sa.Column('progress_percentage', sa.Float(), server_default='0'),
            sa.Column('created_by', sa.String(length=128)),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=NOW),
            sa.Column('started_at', sa.DateTime(timezone=True)),
            sa.Column('completed_at', sa.DateTime(timezone=True)),
            sa.Column('error_message', sa.Text()),
            sa.Column('catalog_code', sa.String(length=64)),
            sa.Column('product_skus', sa.JSON(), nullable=True),
            sa.Column('locale_codes', sa.JSON(), nullable=True)
        )
        op.create_index('ix_workflow_jobs_status', 'workflow_jobs', ['status'])

    if not insp.has_table('outbox'):
        op.create_table('outbox',
            sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column('event_id', sa.String(length=36), nullable=False, unique=True),
            sa.Column('event_type', sa.String(length=32), nullable=False),
            sa.Column('subject', sa.String(length=64), nullable=False),
            sa.Column('aggregate_type', sa.String(length=32), nullable=False, server_default='Product'),
            sa.Column('aggregate_id', sa.String(length=64), nullable=False),
            sa.Column('payload', sa.JSON(), nullable=False),
            sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False, server_default=NOW),
            sa.Column('published_at', sa.DateTime(timezone=True)),
            sa.Column('publish_attempts', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('last_error', sa.Text())
        )
        op.create_index('ix_outbox_published_id', 'outbox', ['published_at', 'id'])


def downgrade():
    bind = op.get_bind()
    insp = inspect(bind)
    for tbl in TABLES:
        if insp.has_table(tbl):
            op.drop_table(tbl)
