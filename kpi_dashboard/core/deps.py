# kpi_dashboard/core/deps.py
from fastapi import HTTPException, Request, status
from kpi_dashboard.services.session import SessionManager
from kpi_dashboard.services.store import DomainStore, MutationResult

def get_store(request: Request) -> DomainStore:
    return request.app.state.store

def get_sessions(request: Request) -> SessionManager:
    return request.app.state.sessions

def raise_for_alert(*results: MutationResult) -> None:
    """Turn the first failed mutation of this request into a 502 for the caller."""
    for result in results:
        if not result.ok:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=result.alert)
