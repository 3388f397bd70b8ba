# kpi_dashboard/routers/data.py
from fastapi import APIRouter, Depends, HTTPException

from kpi_dashboard.core.auth import get_current_manager, get_current_user
from kpi_dashboard.core.deps import get_store
from kpi_dashboard.schemas.entities import Employee
from kpi_dashboard.services.evaluation import visible_assignments, visible_records
from kpi_dashboard.services.ingest import COLLECTIONS
from kpi_dashboard.services.store import DomainStore

router = APIRouter(prefix="/data", tags=["data"])


@router.get("/status")
async def data_status(store: DomainStore = Depends(get_store)):
    return store.status()


@router.post("/refresh")
async def refresh_data(
    store: DomainStore = Depends(get_store),
    manager: Employee = Depends(get_current_manager)
):
    await store.refresh()
    return store.status()


@router.get("/{collection}")
async def read_collection(
    collection: str,
    store: DomainStore = Depends(get_store),
    current_user: Employee = Depends(get_current_user)
):
    if collection not in COLLECTIONS:
        raise HTTPException(404, f"Unknown collection {collection}")

    if collection == "records":
        items = visible_records(store.records, current_user)
    elif collection == "assignments":
        items = visible_assignments(store.assignments, current_user)
    else:
        items = store.collection(collection)

    exclude = {"password"} if collection == "employees" else None
    return [item.model_dump(by_alias=True, mode="json", exclude=exclude) for item in items]
