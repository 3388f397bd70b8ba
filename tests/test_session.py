import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from kpi_dashboard.database import Base
from kpi_dashboard.schemas.entities import UserRole
from kpi_dashboard.services.session import SessionManager, SlotStorage, match_credentials

SLOT = "kpi_user"


@pytest.fixture
async def storage(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/slots.db")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield SlotStorage(async_sessionmaker(bind=engine, expire_on_commit=False))
    await engine.dispose()


@pytest.fixture
def sessions(offline_store, storage):
    return SessionManager(offline_store, storage, SLOT)


async def test_login_with_code(sessions, storage):
    user = await sessions.login("001", "123")

    assert user.id == "e1"
    assert user.role == UserRole.MANAGER
    assert sessions.is_authenticated
    assert sessions.is_manager
    assert user.password == ""
    assert await storage.get(SLOT) is not None


async def test_login_with_email_ignores_case_and_padding(sessions):
    user = await sessions.login("  BOB@Example.com ", " 123 ")

    assert user.id == "e2"
    assert not sessions.is_manager


async def test_wrong_password_leaves_no_session(sessions, storage):
    assert await sessions.login("001", "wrong") is None
    assert sessions.user is None
    assert await storage.get(SLOT) is None


async def test_password_is_case_sensitive(offline_store):
    offline_store.get("employees", "e2").password = "Secret"

    assert match_credentials(offline_store.employees, "002", "secret") is None
    assert match_credentials(offline_store.employees, "002", "Secret").id == "e2"


async def test_persisted_identity_is_restored(sessions, offline_store, storage):
    await sessions.login("alice@example.com", "123")

    restored = SessionManager(offline_store, storage, SLOT)
    user = await restored.restore()

    assert user.id == "e1"
    assert user.role == UserRole.MANAGER
    assert user.password == ""
    assert restored.is_manager


async def test_stored_identity_uses_wire_names(sessions, storage):
    await sessions.login("001", "123")

    raw = await storage.get(SLOT)

    assert '"departmentId":"d1"' in raw
    assert '"password":""' in raw


async def test_logout_clears_slot(sessions, storage):
    await sessions.login("001", "123")

    await sessions.logout()

    assert sessions.user is None
    assert await storage.get(SLOT) is None
    assert await SessionManager(sessions.store, storage, SLOT).restore() is None


async def test_restore_without_slot(sessions):
    assert await sessions.restore() is None
    assert not sessions.is_authenticated


async def test_unreadable_slot_is_discarded(sessions, storage):
    await storage.set(SLOT, "{not json")

    assert await sessions.restore() is None
    assert await storage.get(SLOT) is None


async def test_login_overwrites_previous_identity(sessions, storage):
    await sessions.login("001", "123")
    await sessions.login("002", "123")

    restored = await SessionManager(sessions.store, storage, SLOT).restore()
    assert restored.id == "e2"
