# kpi_dashboard/services/session.py
import logging
from typing import Iterable, Optional

from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from kpi_dashboard.config import settings
from kpi_dashboard.models.session_slot import SessionSlot
from kpi_dashboard.schemas.entities import Employee, UserRole
from kpi_dashboard.services.store import DomainStore

logger = logging.getLogger(__name__)


class SlotStorage:
    """Durable key-value slots in the session_slots table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get(self, key: str) -> Optional[str]:
        async with self.session_factory() as db:
            result = await db.execute(select(SessionSlot.value).where(SessionSlot.key == key))
            return result.scalar_one_or_none()

    async def set(self, key: str, value: str) -> None:
        async with self.session_factory() as db:
            await db.merge(SessionSlot(key=key, value=value))
            await db.commit()

    async def remove(self, key: str) -> None:
        async with self.session_factory() as db:
            await db.execute(delete(SessionSlot).where(SessionSlot.key == key))
            await db.commit()


def match_credentials(employees: Iterable[Employee], identifier: str, password: str) -> Optional[Employee]:
    """Employee whose code or email equals the identifier and whose password matches.

    Identifier comparison is trimmed and case-insensitive; the password is
    only trimmed.
    """
    wanted = str(identifier).strip().lower()
    secret = str(password).strip()
    for emp in employees:
        code = (emp.code or "").strip().lower()
        email = (emp.email or "").strip().lower()
        if wanted in (code, email) and (emp.password or "").strip() == secret:
            return emp
    return None


class SessionManager:
    """Current identity of the console, persisted across restarts.

    Lives beside the store, not inside it: the store performs no
    authorization, callers read ``user`` to decide what to show and allow.
    """

    def __init__(self, store: DomainStore, storage: SlotStorage, slot_key: str = settings.SESSION_SLOT_KEY):
        self.store = store
        self.storage = storage
        self.slot_key = slot_key
        self.user: Optional[Employee] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def is_manager(self) -> bool:
        return self.user is not None and self.user.role == UserRole.MANAGER

    async def restore(self) -> Optional[Employee]:
        raw = await self.storage.get(self.slot_key)
        if not raw:
            return None
        try:
            self.user = Employee.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable session slot %s", self.slot_key)
            await self.storage.remove(self.slot_key)
            self.user = None
        return self.user

    async def login(self, identifier: str, password: str) -> Optional[Employee]:
        logger.info("Attempting login with: %s", str(identifier).strip().lower())
        found = match_credentials(self.store.employees, identifier, password)
        if found is None:
            logger.warning("Login failed.")
            return None

        # role is normalized on parse; the stored identity never keeps the secret
        self.user = found.model_copy(update={"password": ""})
        await self.storage.set(self.slot_key, self.user.model_dump_json(by_alias=True))
        return self.user

    async def logout(self) -> None:
        self.user = None
        await self.storage.remove(self.slot_key)
