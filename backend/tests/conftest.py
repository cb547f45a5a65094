import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from courtside.database import get_session
from courtside.main import create_app
from courtside.models.team import MatchCategory, Team

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. sqlite:///:memory: with StaticPool so ALL sessions share same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. All models imported before create_all() (see session_fixture)
# 4. App built around test_engine and get_session overridden (see client_fixture)
# 5. Tables dropped after each test so ids restart at 1
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on a fresh schema"""
    # Import all models to ensure they're registered BEFORE create_all
    from courtside.models.court import Court  # noqa: F401
    from courtside.models.match import Match  # noqa: F401
    from courtside.models.participant import TournamentTeam  # noqa: F401
    from courtside.models.round import TournamentRound  # noqa: F401
    from courtside.models.team import Team  # noqa: F401
    from courtside.models.tournament import Tournament  # noqa: F401

    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session

    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Provide a test client bound to the test engine

    Override MUST be set BEFORE TestClient() and stay in place
    for the entire duration.
    """
    app = create_app(engine=test_engine)
    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def make_teams(session: Session):
    """Register n teams named T1..Tn in a category; returns them in id order."""

    def _make(n: int, category: MatchCategory = MatchCategory.mens_doubles, seeds=None):
        teams = []
        for i in range(n):
            team = Team(
                name=f"T{i + 1}",
                roster=f"Player {2 * i + 1} / Player {2 * i + 2}",
                category=category.value,
                seed=seeds[i] if seeds else None,
            )
            session.add(team)
            teams.append(team)
        session.commit()
        for team in teams:
            session.refresh(team)
        return teams

    return _make
