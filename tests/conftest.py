from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import models
from app_factory import create_app
from database import Base, get_db, get_session_factory
from dependencies import create_session_token, hash_password
from utils import view_cache

PASSWORD = "password123"
_password_hash = None


def password_hash():
    # bcrypt est lent: un seul hachage pour toute la session de tests
    global _password_hash
    if _password_hash is None:
        _password_hash = hash_password(PASSWORD)
    return _password_hash


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'crm_test.db'}", connect_args={"check_same_thread": False}
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    # Les objets créés restent chargés après commit: ils sont lus depuis d'autres threads
    session = session_factory(expire_on_commit=False)
    yield session
    session.close()


@pytest.fixture(autouse=True)
def clear_view_cache():
    view_cache.clear()
    yield
    view_cache.clear()


@pytest.fixture
def app(session_factory):
    app = create_app()

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


def auth_headers(user):
    return {"Authorization": f"Bearer {create_session_token(user)}"}


class Factory:
    """Crée des enregistrements de test dans la base temporaire."""

    def __init__(self, db):
        self.db = db
        self._seq = 0

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def branch(self, name=None):
        self._seq += 1
        return self._save(models.Branch(name=name or f"Branch {self._seq}"))

    def user(self, role="staff", branch=None, status="active", name=None, email=None):
        self._seq += 1
        return self._save(models.User(
            name=name or f"User {self._seq}",
            email=email or f"user{self._seq}@example.com",
            hashed_password=password_hash(),
            role=models.UserRole(role),
            status=models.UserStatus(status),
            branch_id=branch.id if branch else None,
        ))

    def enquiry(self, branch=None, assigned_to=None, name="Candidate"):
        return self._save(models.Enquiry(
            candidate_name=name,
            branch_id=branch.id if branch else None,
            assigned_to_user_id=assigned_to.id if assigned_to else None,
        ))

    def follow_up(self, enquiry, status="PENDING", due_date=None):
        return self._save(models.FollowUp(
            enquiry_id=enquiry.id,
            status=models.TaskStatus(status),
            due_date=due_date or date(2026, 1, 1),
        ))

    def job_lead(self, branch=None, assigned_to=None, status="PENDING"):
        job = self._save(models.JobOrder(title="Warehouse staff", branch_id=branch.id if branch else None))
        lead = self._save(models.Lead(name="Lead", assigned_to_user_id=assigned_to.id if assigned_to else None))
        return self._save(models.JobLead(job_id=job.id, lead_id=lead.id, status=models.TaskStatus(status)))


@pytest.fixture
def factory(db):
    return Factory(db)
