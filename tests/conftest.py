from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tenant_portal.api.deps.services import get_gateway
from tenant_portal.core.db import get_db
from tenant_portal.main import create_app
from tenant_portal.models.base import Base
from tenant_portal.repositories.payments import PaymentRepository
from tenant_portal.services.gateway import ChargeResult


class StubGateway:
    """Gateway double that approves or declines every charge."""

    def __init__(self, approve=True, error="Card declined"):
        self.approve = approve
        self.error = error
        self.calls = []

    def charge(self, amount_minor_units, method_token):
        self.calls.append((amount_minor_units, method_token))
        if not self.approve:
            return ChargeResult(success=False, error=self.error)
        return ChargeResult(success=True, transaction_id=f"txn_{len(self.calls)}")


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, autoflush=False, future=True)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def repository(db):
    return PaymentRepository(db)


@pytest.fixture
def gateway():
    return StubGateway()


@pytest.fixture
def client(db, gateway):
    app = create_app()

    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_gateway] = lambda: gateway
    return TestClient(app)


@pytest.fixture
def valid_card():
    return {
        "card_number": "4242 4242 4242 4242",
        "expiry_date": f"12/{(date.today().year + 2) % 100:02d}",
        "cvv": "123",
    }
