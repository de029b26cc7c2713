"""Admin login and token checks."""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from apps.console.main import app
from apps.console.deps import get_db
from apps.console.database import get_test_engine, Base
from apps.console.models.admin import AdminUser
from apps.console.auth import create_access_token, decode_token, get_password_hash, verify_password
from apps.console.config import get_settings

client = TestClient(app)


@pytest.fixture
def test_db_session():
    engine = get_test_engine()
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def override_get_db(test_db_session):
    def _get_db():
        try:
            yield test_db_session
        finally:
            pass
    return _get_db


def test_password_hash_round_trip():
    hashed = get_password_hash("s3cret")
    assert verify_password("s3cret", hashed)
    assert not verify_password("other", hashed)
    assert not verify_password("s3cret", "not-a-bcrypt-hash")


def test_token_carries_admin_role():
    payload = decode_token(create_access_token({"sub": "7"}))
    assert payload["sub"] == "7"
    assert payload["role"] == "admin"
    assert decode_token("garbage") is None


@pytest.mark.timeout(10)
def test_login_seeds_default_admin_and_me(test_db_session, override_get_db):
    s = get_settings()
    app.dependency_overrides[get_db] = override_get_db
    try:
        r = client.post("/v1/admin/auth/login", json={"email": s.admin_default_email, "password": s.admin_default_password})
        assert r.status_code == 200
        token = r.json()["access_token"]
        assert r.json()["token_type"] == "bearer"

        me = client.get("/v1/admin/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["email"] == s.admin_default_email
        assert me.json()["role"] == "admin"

        r = client.post("/v1/admin/auth/login", json={"email": s.admin_default_email, "password": "wrong"})
        assert r.status_code == 401
        assert r.json()["detail"] == "Email ou mot de passe incorrect"
    finally:
        app.dependency_overrides.pop(get_db, None)


@pytest.mark.timeout(10)
def test_login_inactive_admin(test_db_session, override_get_db):
    test_db_session.add(AdminUser(email="old@misan.dz", password_hash=get_password_hash("pw"), is_active=False))
    test_db_session.commit()
    app.dependency_overrides[get_db] = override_get_db
    try:
        r = client.post("/v1/admin/auth/login", json={"email": "old@misan.dz", "password": "pw"})
        assert r.status_code == 401
        assert r.json()["detail"] == "Compte administrateur désactivé"
    finally:
        app.dependency_overrides.pop(get_db, None)


def test_me_requires_token():
    r = client.get("/v1/admin/auth/me")
    assert r.status_code == 401
    r = client.get("/v1/admin/auth/me", headers={"Authorization": "Bearer garbage"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Jeton invalide"
