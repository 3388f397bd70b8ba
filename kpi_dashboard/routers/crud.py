# kpi_dashboard/routers/crud.py
# List/create/update/delete endpoints shared by the plain master-data tables.
from typing import Type

from fastapi import APIRouter, Body, Depends, HTTPException, status
from pydantic import ValidationError

from kpi_dashboard.core.auth import get_current_manager, get_current_user
from kpi_dashboard.core.deps import get_store, raise_for_alert
from kpi_dashboard.schemas.entities import KPI, Activity, Department, Employee, Entity
from kpi_dashboard.services.store import DomainStore


def _dump(item: Entity, hidden) -> dict:
    return item.model_dump(by_alias=True, mode="json", exclude=hidden)


def merge_update(existing: Entity, changes: dict, model: Type[Entity]) -> Entity:
    """Backfill fields missing from a partial form from the stored version."""
    merged = {**existing.model_dump(by_alias=True, mode="json"), **changes, "id": existing.id}
    try:
        return model.model_validate(merged)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))


def build_crud_router(collection: str, prefix: str, model: Type[Entity], hidden=None) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=[collection])

    @router.get("")
    async def list_items(
        store: DomainStore = Depends(get_store),
        current_user: Employee = Depends(get_current_user)
    ):
        return [_dump(item, hidden) for item in store.collection(collection)]

    @router.post("", status_code=status.HTTP_201_CREATED)
    async def create_item(
        body: dict = Body(...),
        store: DomainStore = Depends(get_store),
        manager: Employee = Depends(get_current_manager)
    ):
        try:
            item = model.model_validate(body)
        except ValidationError as e:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
        if item.id and store.get(collection, item.id) is not None:
            raise HTTPException(400, f"{model.__name__} {item.id} already exists")

        result = await store.submit_save(collection, item)
        raise_for_alert(result)
        return _dump(result.entity, hidden)

    @router.put("/{item_id}")
    async def update_item(
        item_id: str,
        body: dict = Body(...),
        store: DomainStore = Depends(get_store),
        manager: Employee = Depends(get_current_manager)
    ):
        existing = store.get(collection, item_id)
        if existing is None:
            raise HTTPException(404, f"{model.__name__} not found")

        item = merge_update(existing, body, model)
        result = await store.submit_save(collection, item)
        raise_for_alert(result)
        return _dump(result.entity, hidden)

    @router.delete("/{item_id}")
    async def delete_item(
        item_id: str,
        store: DomainStore = Depends(get_store),
        manager: Employee = Depends(get_current_manager)
    ):
        raise_for_alert(await store.submit_delete(collection, item_id))
        return {"message": f"{model.__name__} deleted"}

    return router


departments = build_crud_router("departments", "/departments", Department)
employees = build_crud_router("employees", "/employees", Employee, hidden={"password"})
kpis = build_crud_router("kpis", "/kpis", KPI)
activities = build_crud_router("activities", "/activities", Activity)
