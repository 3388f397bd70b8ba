# kpi_dashboard/routers/assignments.py
from datetime import date

from fastapi import APIRouter, Body, Depends, HTTPException, status
from pydantic import ValidationError

from kpi_dashboard.core.auth import get_current_manager, get_current_user
from kpi_dashboard.core.deps import get_store, raise_for_alert
from kpi_dashboard.routers.crud import merge_update
from kpi_dashboard.schemas.entities import Assignment, Employee
from kpi_dashboard.services.evaluation import find_assignment, visible_assignments
from kpi_dashboard.services.store import DomainStore

router = APIRouter(prefix="/assignments", tags=["assignments"])


def _check_references(store: DomainStore, item: Assignment) -> None:
    if store.get("employees", item.employee_id) is None:
        raise HTTPException(400, f"Employee {item.employee_id} not found")
    if store.get("kpis", item.kpi_id) is None:
        raise HTTPException(400, f"KPI {item.kpi_id} not found")
    if find_assignment(store.assignments, item.employee_id, item.kpi_id, exclude_id=item.id or None):
        raise HTTPException(400, "This KPI is already assigned to this employee")


@router.get("")
async def list_assignments(
    store: DomainStore = Depends(get_store),
    current_user: Employee = Depends(get_current_user)
):
    return [a.model_dump(by_alias=True, mode="json") for a in visible_assignments(store.assignments, current_user)]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_assignment(
    body: dict = Body(...),
    store: DomainStore = Depends(get_store),
    manager: Employee = Depends(get_current_manager)
):
    try:
        item = Assignment.model_validate(body)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    if not item.assigned_date:
        item = item.model_copy(update={"assigned_date": date.today().isoformat()})
    # without an explicit weight the KPI's default applies
    if "weight" not in body:
        kpi = store.get("kpis", item.kpi_id)
        if kpi is not None:
            item = item.model_copy(update={"weight": kpi.weight})
    _check_references(store, item)

    result = await store.submit_save("assignments", item)
    raise_for_alert(result)
    return result.entity.model_dump(by_alias=True, mode="json")


@router.put("/{assignment_id}")
async def update_assignment(
    assignment_id: str,
    body: dict = Body(...),
    store: DomainStore = Depends(get_store),
    manager: Employee = Depends(get_current_manager)
):
    existing = store.get("assignments", assignment_id)
    if existing is None:
        raise HTTPException(404, "Assignment not found")
    item = merge_update(existing, body, Assignment)
    _check_references(store, item)

    result = await store.submit_save("assignments", item)
    raise_for_alert(result)
    return result.entity.model_dump(by_alias=True, mode="json")


@router.delete("/{assignment_id}")
async def delete_assignment(
    assignment_id: str,
    store: DomainStore = Depends(get_store),
    manager: Employee = Depends(get_current_manager)
):
    raise_for_alert(await store.submit_delete("assignments", assignment_id))
    return {"message": "Assignment deleted"}
