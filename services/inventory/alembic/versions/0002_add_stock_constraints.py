from alembic import op

revision = '0002_add_stock_constraints'
down_revision = '0001_init'
branch_labels = None
depends_on = None

def upgrade():
    with op.batch_alter_table('products') as batch:
        batch.create_unique_constraint('uq_products_seller_sku', ['seller_id', 'sku'])
        batch.create_check_constraint('ck_products_stock_non_negative', 'stock_quantity >= 0')
        batch.create_check_constraint('ck_products_threshold_non_negative', 'low_stock_threshold >= 0')

def downgrade():
    with op.batch_alter_table('products') as batch:
        batch.drop_constraint('ck_products_threshold_non_negative', type_='check')
        batch.drop_constraint('ck_products_stock_non_negative', type_='check')
        batch.drop_constraint('uq_products_seller_sku', type_='unique')
