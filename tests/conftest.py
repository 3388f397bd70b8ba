import asyncio
import copy
import os
import tempfile

# Settings are read at import time; point them at a throwaway database first
_tmp_dir = tempfile.mkdtemp(prefix="kpi-dashboard-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_tmp_dir}/test.db"
os.environ["MOCK_DELAY_SECONDS"] = "0"
os.environ["API_URL"] = ""
os.environ["TRANSPORT"] = "auto"

import pytest

from kpi_dashboard.core.errors import RemoteActionError, RemoteTimeoutError
from kpi_dashboard.services.bridge import MockTransport, RemoteBridge, Transport
from kpi_dashboard.services.store import DomainStore


REMOTE_DATA = {
    "departments": [
        {"id": 1, "code": "IT", "name": "Information Technology", "manager": "John Doe"},
        {"id": 2, "code": "HR", "name": "Human Resources", "manager": "Jane Smith"},
    ],
    "employees": [
        {"id": 10, "code": 1001, "name": "Carol Lead", "departmentId": 1, "position": "Lead",
         "email": " Carol@Example.com ", "role": "Manager ", "password": 4321, "photoUrl": None},
        {"id": 11, "code": "1002", "name": "Dan Dev", "departmentId": 1, "position": "Developer",
         "email": "dan@example.com", "role": "intern", "password": "abc"},
    ],
    "kpis": [
        {"id": "k1", "code": "KPI-01", "name": "Quality", "activity": "Review", "weight": 60,
         "period": "Monthly", "description": "Defect rate",
         "evaluationRules": "{\"GP\": [\"Meets target\", \"No escalations\"]}"},
    ],
    "assignments": [
        {"id": "a1", "employeeId": 10, "kpiId": "k1", "weight": 60, "assignedDate": "2024-01-01"},
        {"id": "a2", "employeeId": 11, "kpiId": "k1", "weight": 40, "assignedDate": "2024-01-01"},
    ],
    "activities": [
        {"id": "ac1", "kpiId": "k1", "code": "ACT-01", "name": "Code Review", "description": "", "active": True},
    ],
    "records": [
        {"id": 5, "date": "2024-03-01", "employeeId": 10, "kpiId": "k1", "activityId": "ac1",
         "activityName": "Code Review", "period": "monthly", "periodDetail": "month-3-2024",
         "level": "GP", "score": 3, "weight": 60, "weightedScore": 1.8, "note": "Meets target"},
    ],
    "levelRules": [],
    "competencies": [],
    "competencyRecords": [],
}


# action suffix -> wire collection the fake backend writes to
WIRE_KEYS = {
    "Department": "departments",
    "Employee": "employees",
    "KPI": "kpis",
    "Activity": "activities",
    "Assignment": "assignments",
    "Record": "records",
    "CompetencyRecord": "competencyRecords",
}


class FakeBackend(Transport):
    """Connected transport answering from an in-memory dataset.

    Actions in ``fail`` are refused with an error envelope. Actions in
    ``lose_reply`` are applied and then time out. Actions in ``hold`` wait
    for ``gate`` before doing anything.
    """

    name = "fake"

    def __init__(self, data=None, fail=(), lose_reply=(), hold=(), is_connected=True):
        self.data = copy.deepcopy(REMOTE_DATA) if data is None else data
        self.fail = set(fail)
        self.lose_reply = set(lose_reply)
        self.hold = set(hold)
        self.gate = asyncio.Event()
        self.is_connected = is_connected
        self.calls = []
        self.closed = False

    def count(self, action):
        return sum(1 for name, _ in self.calls if name == action)

    def _apply(self, action, payload):
        deleting = action.startswith("delete")
        kind = action[len("delete"):] if deleting else action[len("save"):]
        rows = self.data.setdefault(WIRE_KEYS[kind], [])
        if deleting:
            rows[:] = [r for r in rows if str(r.get("id")).strip() != payload]
            return
        for i, row in enumerate(rows):
            if str(row.get("id")).strip() == payload["id"]:
                rows[i] = payload
                return
        rows.append(payload)

    async def call(self, action, payload=None):
        self.calls.append((action, payload))
        if action in self.hold:
            await self.gate.wait()
        if action in self.fail:
            raise RemoteActionError(action, f"{action} is broken")
        if action == "getAllData":
            return copy.deepcopy(self.data)
        self._apply(action, copy.deepcopy(payload))
        if action in self.lose_reply:
            raise RemoteTimeoutError(action, 30)
        return None

    async def aclose(self):
        self.closed = True


@pytest.fixture
def remote_data():
    return copy.deepcopy(REMOTE_DATA)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
async def connected_store(backend):
    store = DomainStore(RemoteBridge(backend))
    await store.start()
    return store


@pytest.fixture
async def offline_store():
    store = DomainStore(RemoteBridge(MockTransport(delay=0)), offline_delay=0)
    await store.start()
    return store
