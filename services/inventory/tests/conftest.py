import os
import tempfile
from decimal import Decimal

# Settings are read once; point them at a throwaway database before any app import
_DB_DIR = tempfile.mkdtemp(prefix="stock-ledger-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(_DB_DIR, 'app.db')}")
os.environ.setdefault("RUN_MIGRATIONS", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from stock_ledger.domain.models import Base, Product, InventoryMovement
from stock_ledger.infrastructure.db import build_engine, build_session_factory, get_db

@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()

@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)

@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()

@pytest.fixture
def make_product(db):
    counter = {"n": 0}

    def _make(seller_id=1, stock=10, threshold=5, price="10.00", category="Dresses", sku=None, title=None, images=None):
        counter["n"] += 1
        product = Product(
            seller_id=seller_id,
            title=title or f"Product {counter['n']}",
            category=category,
            price=Decimal(price),
            images=images,
            sku=sku,
            stock_quantity=stock,
            low_stock_threshold=threshold,
        )
        db.add(product)
        db.commit()
        return product

    return _make

@pytest.fixture
def stock_of(db):
    def _stock(product_id):
        return db.execute(select(Product.stock_quantity).where(Product.id == product_id)).scalar_one()
    return _stock

@pytest.fixture
def movements_for(db):
    def _movements(product_id):
        return list(db.execute(
            select(InventoryMovement)
            .where(InventoryMovement.product_id == product_id)
            .order_by(InventoryMovement.id)
        ).scalars())
    return _movements

@pytest.fixture
def client(session_factory):
    from stock_ledger.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
