"""Shared test fixtures."""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from docket.db.base import Base
# Import all models to register with Base.metadata
import docket.db.models  # noqa: F401
from docket.db.models.user import UserRow
from docket.models.enums import AccessLevel, Visibility
from docket.models.targets import Issue, MergeRequest, Project
from docket.repositories.todo_repo import TodoRepository
from docket.services.todos.ledger import TodoLedger
from docket.services.todos.service import TodoService
from docket.services.todos.visibility import ProjectAccessPolicy

# user_id doubles as username, so "@member" resolves to user "member"
USER_IDS = ("author", "assignee", "non_member", "member", "guest", "admin", "john_doe", "skipped")

MENTIONS = "FYI: @author @assignee @john_doe @member @guest @non_member @admin @skipped"
DIRECTLY_ADDRESSED = "@author @assignee @john_doe @member @guest @non_member @admin @skipped"
ADDRESSED_AND_MENTIONED = "@member, what do you think?\ncc: @guest @admin @skipped"


@pytest.fixture
def mentions():
    return MENTIONS


@pytest.fixture
def directly_addressed():
    return DIRECTLY_ADDRESSED


@pytest.fixture
def addressed_and_mentioned():
    return ADDRESSED_AND_MENTIONED


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite async engine for testing."""
    engine = create_async_engine("sqlite+aiosqlite:///", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)() as seed_session:
        seed_session.add_all(
            UserRow(user_id=uid, username=uid, is_admin=uid == "admin") for uid in USER_IDS
        )
        await seed_session.commit()

    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine):
    """Create a test database session."""
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def policy():
    return ProjectAccessPolicy(admin_ids={"admin"})


@pytest.fixture
def project():
    """Private project; guest has guest access, everyone else but non_member and admin is a developer."""
    members = {
        uid: AccessLevel.DEVELOPER
        for uid in ("author", "assignee", "member", "john_doe", "skipped")
    }
    members["guest"] = AccessLevel.GUEST
    return Project("proj_docket", visibility=Visibility.PRIVATE, members=members)


@pytest.fixture
def issue(project):
    return Issue(
        "iss_1",
        project,
        author_id="author",
        title="Login is broken",
        description=MENTIONS,
        assignees=["assignee"],
    )


@pytest.fixture
def merge_request(project):
    return MergeRequest(
        "mr_1",
        project,
        author_id="author",
        title="Fix login",
        description=MENTIONS,
        assignees=["assignee"],
    )


@pytest.fixture
def service(db_session, policy):
    return TodoService(db_session, policy)


@pytest.fixture
def count_todos(db_session):
    """Count to-do rows straight from the table."""
    ledger = TodoLedger(db_session)

    async def _count(target=None, **criteria) -> int:
        return await ledger.count(target, **criteria)

    return _count


@pytest.fixture
def find_todos(db_session):
    """Load to-do rows, refreshed from the table."""
    repo = TodoRepository(db_session)

    async def _find(target=None, **criteria):
        return await repo.find(target, **criteria)

    return _find


@pytest.fixture
def user_counts(db_session):
    """(pending, done) cached counters of a user."""

    async def _counts(user_id: str) -> tuple[int, int]:
        user = await db_session.get(UserRow, user_id)
        await db_session.refresh(user)
        return user.todos_pending_count, user.todos_done_count

    return _counts


@pytest.fixture
def app(db_engine, policy):
    """Create a test application instance with in-memory DB."""
    from docket.main import create_app

    _app = create_app()
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    _app.state.db_engine = db_engine
    _app.state.db_session_factory = session_factory
    _app.state.visibility = policy
    return _app


@pytest.fixture
async def client(app):
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
