from fastapi import FastAPI
from fastapi.testclient import TestClient
from shared.core import ServiceHealth, HealthStatus
from stock_ledger.infrastructure.db import build_engine

LEDGER_TABLES = ("products", "inventory_movements")

def _client(engine):
    app = FastAPI()
    app.include_router(ServiceHealth("stock-ledger-service", "test", engine, LEDGER_TABLES).create_health_router())
    return TestClient(app)

def test_startup_passes_once_schema_exists(engine):
    resp = _client(engine).get('/health/startup')

    assert resp.status_code == 200
    checks = resp.json()['checks']
    assert checks['database:schema']['status'] == 'pass'
    # create_all builds the schema without alembic's bookkeeping table
    assert checks['database:migrations']['status'] == 'warn'

def test_startup_fails_without_ledger_tables(tmp_path):
    empty = build_engine(f"sqlite:///{tmp_path / 'empty.db'}")
    try:
        resp = _client(empty).get('/health/startup')
    finally:
        empty.dispose()

    assert resp.status_code == 503
    assert 'inventory_movements' in resp.json()['checks']['database:schema']['output']

def test_database_check(engine):
    check = ServiceHealth("svc", "test", engine).check_database()

    assert check['status'] == HealthStatus.PASS

def test_overall_status_takes_the_worst():
    assert ServiceHealth.overall_status({'a': {'status': HealthStatus.PASS}}) == HealthStatus.PASS
    assert ServiceHealth.overall_status({
        'a': {'status': HealthStatus.WARN}, 'b': {'status': HealthStatus.PASS},
    }) == HealthStatus.WARN
    assert ServiceHealth.overall_status({
        'a': {'status': HealthStatus.WARN}, 'b': {'status': HealthStatus.FAIL},
    }) == HealthStatus.FAIL
