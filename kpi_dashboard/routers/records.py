# kpi_dashboard/routers/records.py
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from kpi_dashboard.core.auth import get_current_user
from kpi_dashboard.core.deps import get_store, raise_for_alert
from kpi_dashboard.core.errors import WorkflowError
from kpi_dashboard.schemas.entities import Employee, PeriodType, UserRole
from kpi_dashboard.schemas.evaluation import KPIRecordIn
from kpi_dashboard.services.evaluation import build_kpi_record, find_assignment, visible_records
from kpi_dashboard.services.scoring import LEVEL_ORDER, period_details, rubric_text
from kpi_dashboard.services.store import DomainStore

router = APIRouter(prefix="/records", tags=["records"])


@router.get("")
async def list_records(
    employee_id: Optional[str] = None,
    period_detail: Optional[str] = None,
    store: DomainStore = Depends(get_store),
    current_user: Employee = Depends(get_current_user)
):
    records = visible_records(store.records, current_user)
    if employee_id:
        records = [r for r in records if r.employee_id == employee_id]
    if period_detail:
        records = [r for r in records if r.period_detail == period_detail]
    return [r.model_dump(by_alias=True, mode="json") for r in records]


@router.get("/periods")
async def list_period_details(
    period: PeriodType = PeriodType.MONTHLY,
    year: Optional[int] = None,
    current_user: Employee = Depends(get_current_user)
):
    return period_details(period, year or date.today().year)


@router.get("/form")
async def record_form(
    employee_id: Optional[str] = None,
    kpi_id: Optional[str] = None,
    store: DomainStore = Depends(get_store),
    current_user: Employee = Depends(get_current_user)
):
    """Choices for the record form: assigned KPIs, active activities, rubric per level."""
    if current_user.role == UserRole.EMPLOYEE or not employee_id:
        employee_id = current_user.id

    assigned = []
    for a in store.assignments:
        if a.employee_id != employee_id:
            continue
        kpi = store.get("kpis", a.kpi_id)
        if kpi is not None:
            assigned.append({**kpi.model_dump(by_alias=True, mode="json"), "assignmentWeight": a.weight})

    form = {"employeeId": employee_id, "kpis": assigned, "activities": [], "rubric": {}, "weight": 0}
    if kpi_id:
        kpi = store.get("kpis", kpi_id)
        form["activities"] = [
            a.model_dump(by_alias=True, mode="json")
            for a in store.activities if a.kpi_id == kpi_id and a.active
        ]
        form["rubric"] = {level.value: rubric_text(kpi, level, store.level_rules) for level in LEVEL_ORDER}
        assignment = find_assignment(store.assignments, employee_id, kpi_id)
        form["weight"] = assignment.weight if assignment else 0
    return form


@router.post("", status_code=status.HTTP_201_CREATED)
async def save_record(
    body: KPIRecordIn,
    store: DomainStore = Depends(get_store),
    current_user: Employee = Depends(get_current_user)
):
    if current_user.role == UserRole.EMPLOYEE:
        if body.employee_id != current_user.id:
            raise HTTPException(403, "Employees can only record their own KPIs")
        # only managers comment
        body = body.model_copy(update={"manager_comment": None})

    if body.id:
        existing = store.get("records", body.id)
        if existing is not None and current_user.role == UserRole.EMPLOYEE and existing.employee_id != current_user.id:
            raise HTTPException(403, "Employees can only edit their own records")

    try:
        record = build_kpi_record(store, body)
    except WorkflowError as e:
        raise HTTPException(400, str(e))

    result = await store.submit_save("records", record)
    raise_for_alert(result)
    return result.entity.model_dump(by_alias=True, mode="json")


@router.delete("/{record_id}")
async def delete_record(
    record_id: str,
    store: DomainStore = Depends(get_store),
    current_user: Employee = Depends(get_current_user)
):
    existing = store.get("records", record_id)
    if existing is not None and current_user.role == UserRole.EMPLOYEE and existing.employee_id != current_user.id:
        raise HTTPException(403, "Employees can only delete their own records")

    raise_for_alert(await store.submit_delete("records", record_id))
    return {"message": "Record deleted"}
