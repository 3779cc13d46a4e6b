import pytest
from sqlalchemy import create_engine
from werkzeug.security import check_password_hash

from app.kinygroup.config import resolve_database_url
from app.kinygroup.models import Base, BrandDivision, Department, TeamMember, User
from scripts import init_db, seed_content
from scripts._db_utils import script_session
from scripts.start import resolve_port


@pytest.fixture()
def db_url(tmp_path, monkeypatch):
    url = f"sqlite:///{tmp_path/'seed.db'}"
    engine = create_engine(url, future=True)
    Base.metadata.create_all(bind=engine)
    engine.dispose()
    monkeypatch.setenv("ADMIN_EMAIL", "Owner@Example.com")
    monkeypatch.setenv("ADMIN_PASSWORD", "first-password")
    return url


def test_seed_admin_is_idempotent(db_url, monkeypatch):
    init_db.seed_only(database_url=db_url)
    monkeypatch.setenv("ADMIN_PASSWORD", "second-password")
    init_db.seed_only(database_url=db_url)

    with script_session(db_url) as s:
        users = s.query(User).all()
        assert len(users) == 1
        assert users[0].email == "owner@example.com"
        assert users[0].role == "admin"
        # existing passwords are never overwritten
        assert check_password_hash(users[0].password_hash, "first-password")


def test_seed_content_requires_admin(db_url):
    with pytest.raises(RuntimeError):
        seed_content.seed_content(database_url=db_url)


def test_seed_content_is_idempotent(db_url):
    init_db.seed_only(database_url=db_url)
    seed_content.seed_content(database_url=db_url)
    seed_content.seed_content(database_url=db_url)

    with script_session(db_url) as s:
        assert s.query(BrandDivision).count() == len(seed_content.DIVISIONS)
        assert s.query(Department).count() == len(seed_content.DEPARTMENTS)
        assert s.query(TeamMember).count() == len(seed_content.TEAM)
        tours = s.query(BrandDivision).filter(BrandDivision.slug == "kiny-tours").one()
        assert tours.theme["primary"] == "#3B82F6"


def test_resolve_port():
    assert resolve_port(None) == 8080
    assert resolve_port(" 5000 ") == 5000
    with pytest.raises(ValueError):
        resolve_port("70000")
    with pytest.raises(ValueError):
        resolve_port("abc")


def test_resolve_database_url(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    assert resolve_database_url() == "sqlite:///kinygroup.db"
    monkeypatch.setenv("DATABASE_URL", " postgresql+psycopg://db/site ")
    assert resolve_database_url() == "postgresql+psycopg://db/site"
    assert resolve_database_url("sqlite:///other.db") == "sqlite:///other.db"


def test_script_session_reads_database_url(db_url, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", db_url)
    init_db.seed_only()
    with script_session() as s:
        assert s.query(User).count() == 1
