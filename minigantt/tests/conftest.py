"""
Test configuration and fixtures for the minigantt test suite.
"""
import pytest
from datetime import date
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from minigantt.app.db.models import GanttState, TaskEntity
from minigantt.main import app, get_db, get_graph
from minigantt.tools.gantt.engine import add_days


TODAY = date(2024, 1, 1)


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def empty_state():
    return GanttState()


@pytest.fixture
def scenario_state():
    """Group G holding A(day0-2), B(day3-12, after A) and C(day10-15, after B)."""
    g = TaskEntity(id="G", name="Release", type="group")
    a = TaskEntity(id="A", name="Define scope", parent_id="G", start=TODAY, end=add_days(TODAY, 2))
    b = TaskEntity(id="B", name="Build", parent_id="G", start=add_days(TODAY, 3), end=add_days(TODAY, 12), deps=["A"])
    c = TaskEntity(id="C", name="Polish", parent_id="G", start=add_days(TODAY, 10), end=add_days(TODAY, 15), deps=["B"])
    return GanttState(tasks=[g, a, b, c])


@pytest.fixture
def nested_state():
    """Two root groups; P contains task P1 and sub-group Q (with Q1, Q2); R holds R1; X is a root task."""
    return GanttState(tasks=[
        TaskEntity(id="P", name="P", type="group"),
        TaskEntity(id="P1", name="P1", parent_id="P", start=TODAY, end=add_days(TODAY, 1)),
        TaskEntity(id="Q", name="Q", type="group", parent_id="P"),
        TaskEntity(id="Q1", name="Q1", parent_id="Q", start=add_days(TODAY, 2), end=add_days(TODAY, 4)),
        TaskEntity(id="Q2", name="Q2", parent_id="Q", start=add_days(TODAY, -1), end=add_days(TODAY, 3)),
        TaskEntity(id="R", name="R", type="group"),
        TaskEntity(id="R1", name="R1", parent_id="R", start=add_days(TODAY, 5), end=add_days(TODAY, 6)),
        TaskEntity(id="X", name="X", start=add_days(TODAY, 7), end=add_days(TODAY, 7)),
    ])


@pytest.fixture
def test_db(tmp_path):
    """Create a test SQLite database and override the get_db dependency.

    Returns the generator function so tests can do: db = next(test_db())
    """
    db_path = tmp_path / "test.db"
    engine = create_engine(f"sqlite:///{db_path}", echo=False, connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield override_get_db
    app.dependency_overrides.clear()
    engine.dispose()


@pytest.fixture
def live_graph(scenario_state):
    """The plan the API serves during a test; a fresh instance every time."""
    return scenario_state


@pytest.fixture
def client(test_db, live_graph):
    """Test client bound to a fresh plan and a throwaway database."""
    app.dependency_overrides[get_graph] = lambda: live_graph
    yield TestClient(app)
    app.dependency_overrides.pop(get_graph, None)
