from typing import Optional
from fastapi import APIRouter, Depends
from kpi_dashboard.core.auth import get_current_user
from kpi_dashboard.core.deps import get_store
from kpi_dashboard.schemas.entities import Employee
from kpi_dashboard.services.dashboard import ALL, build_dashboard
from kpi_dashboard.services.store import DomainStore

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

@router.get("")
async def get_dashboard(
    department_id: str = ALL,
    employee_id: Optional[str] = None,
    store: DomainStore = Depends(get_store),
    current_user: Employee = Depends(get_current_user)
):
    # filters only apply to managers; employees always get their own card
    return build_dashboard(store, current_user, department_id, employee_id)
