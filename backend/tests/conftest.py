import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from printshop.api.auth import create_access_token
from printshop.db import session as db_session
from printshop.main import app
from printshop.models.order import Order
from printshop.models.paper import PaperRequest, PaperStock
from printshop.models.party import Customer, User


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    previous = db_session._engine
    db_session.set_engine(engine)
    yield engine
    db_session.set_engine(previous)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture
def add(engine):
    """Persist a row in its own session and hand back the refreshed instance."""
    def _add(obj):
        with Session(engine) as s:
            s.add(obj)
            s.commit()
            s.refresh(obj)
        return obj
    return _add


@pytest.fixture
def fetch(engine):
    def _fetch(model, key):
        with Session(engine) as s:
            return s.get(model, key)
    return _fetch


@pytest.fixture
def user(add):
    return add(User(id="user-1", name="Rina", email="rina@example.com", role="MARKETING"))


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def client(engine):
    return TestClient(app)


@pytest.fixture
def customer(add):
    return add(Customer(id=7, nama="PT Maju Jaya", telp="0812000111"))


@pytest.fixture
def order(add, customer):
    return add(Order(
        id="order-1",
        spk="0125001",
        customer_id=customer.id,
        produk="PRINT, PRESS",
        nama_kain="Polyester",
        jumlah_kain="25",
        lebar_kain="150",
        status="PENDING",
        statusm="DESIGN",
    ))


@pytest.fixture
def art_paper(add):
    return add(PaperStock(
        id="stock-1",
        qr_code="X1",
        name="Art Paper 150",
        type="Art Paper",
        gsm=150,
        width=65,
        length=200,
        remaining_length=180,
        approved=True,
    ))


@pytest.fixture
def paper_request(add, user):
    return add(PaperRequest(
        id="req-1",
        user_id=user.id,
        paper_type="Art Paper",
        gsm="150",
        width="65",
        length="100",
    ))
