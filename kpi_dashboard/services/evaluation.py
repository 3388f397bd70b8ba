# kpi_dashboard/services/evaluation.py
# Building KPI and competency records the way the evaluation forms do.
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from kpi_dashboard.core.errors import WorkflowError
from kpi_dashboard.schemas.entities import (
    Assignment, Competency, CompetencyRecord, Employee, EvaluationLevel,
    KPIRecord, UserRole,
)
from kpi_dashboard.schemas.evaluation import CompetencyAssessmentIn, KPIRecordIn
from kpi_dashboard.services.scoring import (
    competency_score, kpi_score, rubric_text, weighted_score,
)
from kpi_dashboard.services.store import DomainStore


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def find_assignment(assignments: Iterable[Assignment], employee_id: str, kpi_id: str,
                    exclude_id: Optional[str] = None) -> Optional[Assignment]:
    for a in assignments:
        if a.employee_id == employee_id and a.kpi_id == kpi_id and a.id != exclude_id:
            return a
    return None


def visible_records(records: Iterable[KPIRecord], user: Employee) -> List[KPIRecord]:
    if user.role == UserRole.MANAGER:
        return list(records)
    return [r for r in records if r.employee_id == user.id]


def visible_assignments(assignments: Iterable[Assignment], user: Employee) -> List[Assignment]:
    if user.role == UserRole.MANAGER:
        return list(assignments)
    return [a for a in assignments if a.employee_id == user.id]


def build_kpi_record(store: DomainStore, data: KPIRecordIn, now: Optional[str] = None) -> KPIRecord:
    """Turn a form submission into a KPIRecord ready for save_record.

    Editing keeps the original id and date. A new submission for an
    (employee, kpi, period, period detail) that already has a record reuses
    that record's id, so the sheet keeps one row per evaluation period.
    """
    employee = store.get("employees", data.employee_id)
    if employee is None:
        raise WorkflowError(f"Employee {data.employee_id} not found")
    kpi = store.get("kpis", data.kpi_id)
    if kpi is None:
        raise WorkflowError(f"KPI {data.kpi_id} not found")

    assignment = find_assignment(store.assignments, employee.id, kpi.id)
    if assignment is None:
        raise WorkflowError(f"KPI {kpi.code or kpi.id} is not assigned to {employee.name or employee.id}")

    activity = store.get("activities", data.activity_id)
    if activity is None or activity.kpi_id != kpi.id or not activity.active:
        raise WorkflowError(f"Activity {data.activity_id} is not an active activity of this KPI")

    existing = None
    if data.id:
        existing = store.get("records", data.id)
        if existing is None:
            raise WorkflowError(f"Record {data.id} not found")
    else:
        for r in store.records:
            if (r.employee_id == employee.id and r.kpi_id == kpi.id
                    and r.period == data.period and r.period_detail == data.period_detail):
                existing = r
                break

    score = kpi_score(data.level)
    weight = assignment.weight
    note = data.note if data.note else rubric_text(kpi, data.level, store.level_rules)

    return KPIRecord(
        id=existing.id if existing else "",
        date=existing.date if existing else (now or _now_iso()),
        employee_id=employee.id,
        kpi_id=kpi.id,
        activity_id=activity.id,
        activity_name=activity.name,
        period=data.period,
        period_detail=data.period_detail,
        level=data.level,
        score=score,
        weight=weight,
        weighted_score=weighted_score(score, weight),
        note=note,
        user_note=data.user_note,
        progress=data.progress,
        detail_progress=data.detail_progress,
        manager_comment=data.manager_comment if data.manager_comment is not None else (
            existing.manager_comment if existing else ""
        ),
    )


def competency_totals(competencies: Iterable[Competency], levels: Dict[str, EvaluationLevel]) -> dict:
    total_score = 0.0
    total_weight = 0.0
    for comp in competencies:
        level = levels.get(comp.id)
        if level:
            total_score += weighted_score(competency_score(level), comp.weight, None)
        total_weight += comp.weight
    return {"total_score": round(total_score, 2), "total_weight": total_weight}


def build_competency_records(store: DomainStore, data: CompetencyAssessmentIn,
                             now: Optional[str] = None) -> List[CompetencyRecord]:
    """One record per assessed competency, reusing ids already stored for the period."""
    if store.get("employees", data.employee_id) is None:
        raise WorkflowError(f"Employee {data.employee_id} not found")
    if not data.levels:
        raise WorkflowError("Select a level for at least one competency")

    unknown = [cid for cid in data.levels if store.get("competencies", cid) is None]
    if unknown:
        raise WorkflowError(f"Unknown competencies: {', '.join(unknown)}")

    stamp = now or _now_iso()
    records = []
    for comp in store.competencies:
        level = data.levels.get(comp.id)
        if not level:
            continue
        existing = next(
            (r for r in store.competency_records
             if r.employee_id == data.employee_id and r.period == data.period and r.competency_id == comp.id),
            None,
        )
        score = competency_score(level)
        records.append(CompetencyRecord(
            id=existing.id if existing else "",
            date=stamp,
            employee_id=data.employee_id,
            competency_id=comp.id,
            period=data.period,
            level=level,
            score=score,
            weight=comp.weight,
            weighted_score=weighted_score(score, comp.weight, None),
        ))
    return records


def assessment_levels(store: DomainStore, employee_id: str, period: str) -> Dict[str, EvaluationLevel]:
    return {
        r.competency_id: r.level
        for r in store.competency_records
        if r.employee_id == employee_id and r.period == period
    }
