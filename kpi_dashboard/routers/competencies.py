# kpi_dashboard/routers/competencies.py
import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from kpi_dashboard.core.auth import get_current_manager, get_current_user
from kpi_dashboard.core.deps import get_store, raise_for_alert
from kpi_dashboard.core.errors import WorkflowError
from kpi_dashboard.schemas.entities import Employee, UserRole
from kpi_dashboard.schemas.evaluation import CompetencyAssessmentIn, CompetencyAssessmentResponse
from kpi_dashboard.services.evaluation import assessment_levels, build_competency_records, competency_totals
from kpi_dashboard.services.scoring import competency_periods, default_competency_period
from kpi_dashboard.services.store import DomainStore

router = APIRouter(prefix="/competencies", tags=["competencies"])


def _own_or_manager(current_user: Employee, employee_id: str) -> None:
    if current_user.role == UserRole.EMPLOYEE and employee_id != current_user.id:
        raise HTTPException(403, "Employees can only view their own assessment")


@router.get("")
async def list_competencies(
    store: DomainStore = Depends(get_store),
    current_user: Employee = Depends(get_current_user)
):
    return {
        "competencies": [c.model_dump(by_alias=True, mode="json") for c in store.competencies],
        "periods": competency_periods(),
        "default_period": default_competency_period(),
    }


@router.get("/assessment", response_model=CompetencyAssessmentResponse)
async def read_assessment(
    employee_id: Optional[str] = None,
    period: Optional[str] = None,
    store: DomainStore = Depends(get_store),
    current_user: Employee = Depends(get_current_user)
):
    employee_id = employee_id or current_user.id
    period = period or default_competency_period()
    _own_or_manager(current_user, employee_id)

    levels = assessment_levels(store, employee_id, period)
    records = [
        r for r in store.competency_records
        if r.employee_id == employee_id and r.period == period
    ]
    return CompetencyAssessmentResponse(
        employee_id=employee_id,
        period=period,
        levels=levels,
        records=records,
        **competency_totals(store.competencies, levels),
    )


@router.post("/assessment", response_model=CompetencyAssessmentResponse)
async def save_assessment(
    body: CompetencyAssessmentIn,
    store: DomainStore = Depends(get_store),
    current_user: Employee = Depends(get_current_user)
):
    _own_or_manager(current_user, body.employee_id)
    try:
        records = build_competency_records(store, body)
    except WorkflowError as e:
        raise HTTPException(400, str(e))

    results = await asyncio.gather(*(store.submit_save("competency_records", r) for r in records))
    raise_for_alert(*results)

    return CompetencyAssessmentResponse(
        employee_id=body.employee_id,
        period=body.period,
        levels=body.levels,
        records=[r.entity for r in results],
        **competency_totals(store.competencies, body.levels),
    )


@router.delete("/records/{record_id}")
async def delete_competency_record(
    record_id: str,
    store: DomainStore = Depends(get_store),
    manager: Employee = Depends(get_current_manager)
):
    raise_for_alert(await store.submit_delete("competency_records", record_id))
    return {"message": "Competency record deleted"}
