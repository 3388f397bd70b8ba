# kpi_dashboard/services/store.py
import asyncio
import logging
import uuid
from collections import deque
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Union

from kpi_dashboard.config import settings
from kpi_dashboard.core.errors import DecodingError, RemoteActionError
from kpi_dashboard.data.seed import seed_dataset
from kpi_dashboard.schemas.entities import (
    KPI, Activity, Assignment, Competency, CompetencyRecord, Department,
    Employee, Entity, KPIRecord, LevelRule,
)
from kpi_dashboard.services.bridge import RemoteBridge
from kpi_dashboard.services.ingest import COLLECTIONS, parse_dataset

logger = logging.getLogger(__name__)

# collection -> (save action, delete action); level rules and competencies are read-only
ACTIONS: Dict[str, tuple] = {
    "departments": ("saveDepartment", "deleteDepartment"),
    "employees": ("saveEmployee", "deleteEmployee"),
    "kpis": ("saveKPI", "deleteKPI"),
    "activities": ("saveActivity", "deleteActivity"),
    "assignments": ("saveAssignment", "deleteAssignment"),
    "records": ("saveRecord", "deleteRecord"),
    "competency_records": ("saveCompetencyRecord", "deleteCompetencyRecord"),
}


@dataclass
class PendingPatch:
    """One optimistic change waiting for the backend to confirm it."""

    correlation_id: str
    collection: str
    entity_id: str
    before: Optional[Entity]
    after: Optional[Entity]
    position: int


@dataclass
class MutationResult:
    """Outcome of one save or delete: the entity involved and the alert it raised, if any."""

    entity: Optional[Entity] = None
    alert: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.alert is None


class DomainStore:
    """Single source of truth for every entity collection.

    Mutations are applied locally first, then sent through the bridge. A
    refused remote action rolls back its own patch; any other failure, or a
    patch that can no longer be undone cleanly, reloads everything. Nothing
    here raises to the caller.
    """

    def __init__(
        self,
        bridge: RemoteBridge,
        is_dev: Optional[bool] = None,
        notify: Optional[Callable[[str], None]] = None,
        offline_delay: float = settings.MOCK_DELAY_SECONDS,
    ):
        self.bridge = bridge
        self.is_connected = bridge.is_connected
        self.is_dev = (not self.is_connected) if is_dev is None else is_dev
        self.offline_delay = offline_delay
        self.loading = False
        self.load_error: Optional[str] = None
        self.decode_errors: List[DecodingError] = []
        self.alerts: deque = deque(maxlen=50)
        self.alert_count = 0
        self._notify = notify
        self._collections: Dict[str, Dict[str, Entity]] = {name: {} for name in COLLECTIONS}
        self._pending: Dict[str, PendingPatch] = {}

    # --- lifecycle ---

    async def start(self) -> None:
        await self.load_all()

    async def refresh(self) -> None:
        await self.load_all()

    async def close(self) -> None:
        for items in self._collections.values():
            items.clear()
        self._pending.clear()
        self.alerts.clear()
        await self.bridge.aclose()

    async def __aenter__(self) -> "DomainStore":
        await self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    # --- reads ---

    def collection(self, name: str) -> List[Entity]:
        return list(self._collections[name].values())

    def get(self, name: str, entity_id) -> Optional[Entity]:
        return self._collections[name].get(str(entity_id).strip())

    @property
    def departments(self) -> List[Department]:
        return self.collection("departments")

    @property
    def employees(self) -> List[Employee]:
        return self.collection("employees")

    @property
    def kpis(self) -> List[KPI]:
        return self.collection("kpis")

    @property
    def assignments(self) -> List[Assignment]:
        return self.collection("assignments")

    @property
    def activities(self) -> List[Activity]:
        return self.collection("activities")

    @property
    def records(self) -> List[KPIRecord]:
        return self.collection("records")

    @property
    def level_rules(self) -> List[LevelRule]:
        return self.collection("level_rules")

    @property
    def competencies(self) -> List[Competency]:
        return self.collection("competencies")

    @property
    def competency_records(self) -> List[CompetencyRecord]:
        return self.collection("competency_records")

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def status(self) -> dict:
        return {
            "loading": self.loading,
            "is_dev": self.is_dev,
            "is_connected": self.is_connected,
            "transport": self.bridge.transport.name,
            "load_error": self.load_error,
            "rejected_records": [str(e) for e in self.decode_errors],
            "pending": self.pending_count,
            "alerts": list(self.alerts),
            "counts": {name: len(items) for name, items in self._collections.items()},
        }

    # --- load-all ---

    async def load_all(self) -> None:
        self.loading = True
        try:
            if self.is_connected:
                try:
                    data = await self.bridge.invoke("getAllData")
                    if data:
                        if not isinstance(data, dict):
                            raise DecodingError("getAllData", None, "payload is not an object")
                        dataset = parse_dataset(data)
                        self._replace_all(dataset.collections)
                        self.decode_errors = dataset.errors
                    self.load_error = None
                except Exception as e:
                    logger.error("Loading data from the backend failed: %s", e, exc_info=True)
                    if self.is_dev:
                        self._replace_all(seed_dataset())
                    else:
                        # state stays as it was; /data/refresh retries
                        self.load_error = str(e)
            else:
                await asyncio.sleep(self.offline_delay)
                self._replace_all(seed_dataset())
        finally:
            self.loading = False

    def _replace_all(self, collections: Dict[str, List[Entity]]) -> None:
        for name in self._collections:
            self._collections[name] = {e.id: e for e in collections.get(name, [])}
        # earlier patches no longer describe the current state
        self._pending.clear()

    # --- generic mutations ---

    def _coerce(self, name: str, entity: Union[Entity, dict]) -> Entity:
        model = COLLECTIONS[name][1]
        if isinstance(entity, dict):
            return model.model_validate(entity)
        return entity

    async def submit_save(self, name: str, entity: Union[Entity, dict]) -> MutationResult:
        """Optimistic save that reports its own outcome.

        ``alert`` is set only when this call's remote action failed, so
        concurrent callers never see each other's failures.
        """
        action = ACTIONS[name][0]
        entity = self._coerce(name, entity)
        if not entity.id:
            entity = entity.model_copy(update={"id": str(uuid.uuid4())})

        patch = self._apply_save(name, entity)
        if not self.is_connected:
            return MutationResult(entity)

        self._pending[patch.correlation_id] = patch
        try:
            await self.bridge.invoke(action, entity.to_payload())
        except Exception as e:
            logger.error("Error saving via %s: %s", action, e, exc_info=True)
            alert = self._alert(f"Save failed ({e}). The data has been restored from the backend.")
            await self._recover(patch, e)
            return MutationResult(entity, alert)
        self._pending.pop(patch.correlation_id, None)
        return MutationResult(entity)

    async def submit_delete(self, name: str, entity_id) -> MutationResult:
        action = ACTIONS[name][1]
        entity_id = str(entity_id).strip()

        patch = self._apply_delete(name, entity_id)
        if not self.is_connected:
            return MutationResult(patch.before)

        self._pending[patch.correlation_id] = patch
        try:
            await self.bridge.invoke(action, entity_id)
        except Exception as e:
            logger.error("Error deleting via %s: %s", action, e, exc_info=True)
            alert = self._alert(
                "Could not delete the data (backend error).\n\n"
                "Possible causes:\n"
                f"1. The backend has no {action} handler yet\n"
                "2. The spreadsheet backend raised an error\n\n"
                "The previous data will be restored."
            )
            await self._recover(patch, e)
            return MutationResult(patch.before, alert)
        self._pending.pop(patch.correlation_id, None)
        return MutationResult(patch.before)

    async def save(self, name: str, entity: Union[Entity, dict]) -> Entity:
        return (await self.submit_save(name, entity)).entity

    async def delete(self, name: str, entity_id) -> None:
        await self.submit_delete(name, entity_id)

    def _apply_save(self, name: str, entity: Entity) -> PendingPatch:
        items = self._collections[name]
        before = items.get(entity.id)
        position = list(items).index(entity.id) if before is not None else len(items)
        # dict assignment keeps an existing key in place and appends a new one
        items[entity.id] = entity
        return PendingPatch(uuid.uuid4().hex, name, entity.id, before, entity, position)

    def _apply_delete(self, name: str, entity_id: str) -> PendingPatch:
        items = self._collections[name]
        keys = list(items)
        position = keys.index(entity_id) if entity_id in items else -1
        before = items.pop(entity_id, None)
        return PendingPatch(uuid.uuid4().hex, name, entity_id, before, None, position)

    async def _recover(self, patch: PendingPatch, error: Exception) -> None:
        pending = self._pending.pop(patch.correlation_id, None)
        # Only an explicit refusal proves the backend is untouched; a lost
        # reply or timeout may follow a write that did land.
        if isinstance(error, RemoteActionError) and pending is not None and self._can_roll_back(pending):
            self._roll_back(pending)
            logger.info("Rolled back %s/%s", pending.collection, pending.entity_id)
        else:
            logger.info("Reloading all data after failed %s/%s", patch.collection, patch.entity_id)
            await self.load_all()

    def _can_roll_back(self, patch: PendingPatch) -> bool:
        for other in self._pending.values():
            if other.collection == patch.collection and other.entity_id == patch.entity_id:
                return False
        return self._collections[patch.collection].get(patch.entity_id) is patch.after

    def _roll_back(self, patch: PendingPatch) -> None:
        items = self._collections[patch.collection]
        if patch.before is None:
            items.pop(patch.entity_id, None)
        elif patch.entity_id in items:
            items[patch.entity_id] = patch.before
        else:
            entries = list(items.items())
            entries.insert(patch.position, (patch.entity_id, patch.before))
            self._collections[patch.collection] = dict(entries)

    def _alert(self, message: str) -> str:
        self.alerts.append(message)
        self.alert_count += 1
        if self._notify is not None:
            self._notify(message)
        return message

    # --- per-entity operations ---

    async def save_department(self, data) -> Department:
        return await self.save("departments", data)

    async def delete_department(self, entity_id) -> None:
        await self.delete("departments", entity_id)

    async def save_employee(self, data) -> Employee:
        return await self.save("employees", data)

    async def delete_employee(self, entity_id) -> None:
        await self.delete("employees", entity_id)

    async def save_kpi(self, data) -> KPI:
        return await self.save("kpis", data)

    async def delete_kpi(self, entity_id) -> None:
        await self.delete("kpis", entity_id)

    async def save_activity(self, data) -> Activity:
        return await self.save("activities", data)

    async def delete_activity(self, entity_id) -> None:
        await self.delete("activities", entity_id)

    async def save_assignment(self, data) -> Assignment:
        return await self.save("assignments", data)

    async def delete_assignment(self, entity_id) -> None:
        await self.delete("assignments", entity_id)

    async def save_record(self, data) -> KPIRecord:
        return await self.save("records", data)

    async def delete_record(self, entity_id) -> None:
        await self.delete("records", entity_id)

    async def save_competency_record(self, data) -> CompetencyRecord:
        return await self.save("competency_records", data)

    async def delete_competency_record(self, entity_id) -> None:
        await self.delete("competency_records", entity_id)
