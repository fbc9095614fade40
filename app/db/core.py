from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from app.core.config import settings


def _engine_kwargs(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {}
    kwargs = {"connect_args": {"check_same_thread": False}}
    # In-memory databases only live as long as their single connection
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return kwargs


engine = create_engine(settings.database_url,
                       **_engine_kwargs(settings.database_url))


def get_session():
    with Session(engine) as session:
        yield session
