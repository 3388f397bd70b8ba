# kpi_dashboard/services/dashboard.py
from typing import List, Optional

from kpi_dashboard.schemas.entities import Employee, KPIRecord, UserRole
from kpi_dashboard.services.scoring import MAX_KPI_SCORE, level_for_average, status_for_average
from kpi_dashboard.services.store import DomainStore

ALL = "all"


def _average_score(records: List[KPIRecord]) -> float:
    if not records:
        return 0.0
    return sum(r.score or 0 for r in records) / len(records)


def filter_employees(store: DomainStore, user: Employee, department_id: str = ALL,
                     employee_id: str = ALL) -> List[Employee]:
    """Employees an identity may look at: self for employees, filtered for managers."""
    if user.role == UserRole.EMPLOYEE:
        return [e for e in store.employees if e.id == user.id]
    employees = store.employees
    if department_id != ALL:
        employees = [e for e in employees if e.department_id == department_id]
    if employee_id != ALL:
        employees = [e for e in employees if e.id == employee_id]
    return employees


def build_dashboard(store: DomainStore, user: Employee, department_id: str = ALL,
                    employee_id: Optional[str] = None) -> dict:
    # without a department filter managers start on their own card; picking a
    # department starts from the whole department
    if employee_id is None:
        employee_id = user.id if department_id == ALL else ALL

    employees = filter_employees(store, user, department_id, employee_id)
    ids = {e.id for e in employees}
    records = [r for r in store.records if r.employee_id in ids]
    assignments = [a for a in store.assignments if a.employee_id in ids]

    avg = _average_score(records)
    completion = round(len(records) / len(assignments) * 100) if assignments else 0

    kpi_ids = list(dict.fromkeys(a.kpi_id for a in assignments))
    kpi_performance = []
    for kpi_id in kpi_ids:
        kpi = store.get("kpis", kpi_id)
        kpi_recs = [r for r in records if r.kpi_id == kpi_id]
        kpi_avg = _average_score(kpi_recs)
        kpi_performance.append({
            "id": kpi_id,
            "name": kpi.name if kpi else "Unknown",
            "code": kpi.code if kpi else "",
            "avg_score": round(kpi_avg, 2),
            "percentage": round(kpi_avg / MAX_KPI_SCORE * 100, 2),
            "count": len(kpi_recs),
        })
    kpi_performance.sort(key=lambda item: item["avg_score"], reverse=True)

    ranking = []
    for emp in employees:
        emp_avg = _average_score([r for r in store.records if r.employee_id == emp.id])
        ranking.append({
            "id": emp.id,
            "name": emp.name,
            "code": emp.code,
            "score": round(emp_avg, 2),
            "status": status_for_average(emp_avg),
        })
    ranking.sort(key=lambda item: item["score"], reverse=True)

    individual = user.role == UserRole.EMPLOYEE or employee_id != ALL
    current = employees[0] if individual and employees else None
    department = store.get("departments", current.department_id) if current else None

    return {
        "employee_count": len(employees),
        "assignment_count": len(assignments),
        "avg_score": round(avg, 2),
        "completion_rate": completion,
        "current_level": level_for_average(avg).value,
        "status": status_for_average(avg),
        "kpi_performance": kpi_performance,
        "team_ranking": ranking[:6],
        "individual_view": individual,
        "employee": current.model_dump(by_alias=True, mode="json", exclude={"password"}) if current else None,
        "department": department.model_dump(by_alias=True, mode="json") if department else None,
    }
