import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.api.deps import get_db, get_current_user
from app.core.config import settings
from app.core.security import get_password_hash
from app.db.base import Base
from app.db.models import User
from app.utils.system_settings import clear_settings_cache

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

ADMIN_EMAIL = "admin@fleetco.com"
ADMIN_PASSWORD = "admin-password"


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def admin_user(db):
    user = User(
        username="admin",
        email=ADMIN_EMAIL,
        hashed_password=get_password_hash(ADMIN_PASSWORD),
        role="admin",
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def client(db, admin_user):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: admin_user
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def fresh_settings_cache():
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path))
    return tmp_path


@pytest.fixture
def make_customer(client):
    def _make(code="C001", name="Siam Steel", **extra):
        response = client.post("/api/v1/customers", json={"cm_code": code, "cm_name": name, **extra})
        assert response.status_code == 201, response.text
        return response.json()
    return _make


@pytest.fixture
def make_driver(client):
    def _make(license_number="DL-1001", name="Somchai", **extra):
        response = client.post(
            "/api/v1/drivers",
            json={"driver_name": name, "driver_license": license_number, **extra},
        )
        assert response.status_code == 201, response.text
        return response.json()
    return _make


@pytest.fixture
def make_vehicle(client):
    def _make(plate="70-1234", **extra):
        payload = {"license_plate": plate, "brand": "Isuzu", "vehicle_type": "Truck", **extra}
        response = client.post("/api/v1/vehicles", json=payload)
        assert response.status_code == 201, response.text
        return response.json()
    return _make
