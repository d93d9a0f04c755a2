from alembic import op
import sqlalchemy as sa

revision = '0001_init'
down_revision = None
branch_labels = None
depends_on = None

MOVEMENT_TYPES = ('sale', 'restock', 'return', 'adjustment', 'reservation', 'cancellation', 'damaged', 'transfer')

def upgrade():
    op.create_table(
        'products',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('seller_id', sa.Integer, nullable=False, index=True),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('images', sa.JSON, nullable=True),
        sa.Column('sku', sa.String(64), nullable=True),
        sa.Column('stock_quantity', sa.Integer, nullable=False, server_default='0'),
        sa.Column('low_stock_threshold', sa.Integer, nullable=True, server_default='5'),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now())
    )
    op.create_table(
        'inventory_movements',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('product_id', sa.Integer, sa.ForeignKey('products.id', ondelete='RESTRICT'), nullable=False, index=True),
        sa.Column('quantity', sa.Integer, nullable=False),
        sa.Column('type', sa.Enum(*MOVEMENT_TYPES, name='movement_type', native_enum=False, length=20), nullable=False, index=True),
        sa.Column('reference_id', sa.String(100), nullable=True, index=True),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('previous_stock', sa.Integer, nullable=False),
        sa.Column('new_stock', sa.Integer, nullable=False),
        sa.Column('performed_by', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(), index=True)
    )

def downgrade():
    op.drop_table('inventory_movements')
    op.drop_table('products')
