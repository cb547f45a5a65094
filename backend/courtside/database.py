from pathlib import Path
from typing import Generator

from fastapi import Request
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from courtside import config


def create_db_engine(database_url: str = config.DATABASE_URL, echo: bool = config.SQL_ECHO) -> Engine:
    """Build an engine for the given URL. Owned by the process entry point."""
    is_sqlite = database_url.startswith("sqlite")
    connect_args = {"check_same_thread": False} if is_sqlite else {}

    if is_sqlite and ":memory:" not in database_url:
        db_path = database_url.replace("sqlite:///", "", 1)
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    return create_engine(database_url, echo=echo, connect_args=connect_args)


def get_session(request: Request) -> Generator[Session, None, None]:
    """Get database session bound to the app's engine"""
    with Session(request.app.state.engine) as session:
        yield session


def init_db(engine: Engine) -> None:
    """Initialize database - create all tables"""
    # Import all models to ensure they're registered with SQLModel metadata
    from courtside.models.court import Court  # noqa: F401
    from courtside.models.match import Match  # noqa: F401
    from courtside.models.participant import TournamentTeam  # noqa: F401
    from courtside.models.round import TournamentRound  # noqa: F401
    from courtside.models.team import Team  # noqa: F401
    from courtside.models.tournament import Tournament  # noqa: F401

    SQLModel.metadata.create_all(engine)
