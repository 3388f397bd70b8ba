from contextlib import asynccontextmanager
from typing import Any, Optional
import logging

from fastapi import FastAPI

from kpi_dashboard.config import Settings, settings
from kpi_dashboard.database import engine, AsyncSessionLocal
from kpi_dashboard.models.session_slot import SessionSlot
from kpi_dashboard.routers import assignments, auth, competencies, crud, dashboard, data, records
from kpi_dashboard.services.bridge import RemoteBridge, build_bridge
from kpi_dashboard.services.session import SessionManager, SlotStorage
from kpi_dashboard.services.store import DomainStore


def create_app(
    config: Settings = settings,
    host: Any = None,
    bridge: Optional[RemoteBridge] = None,
) -> FastAPI:
    """Build the API around one store.

    ``host`` is an embedding-provided RPC handle; ``bridge`` replaces the
    configured transport entirely (tests, scripts).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logging.basicConfig(level=config.LOG_LEVEL)

        # Create DB Tables (for the session slot only; alembic tracks the same table)
        async with engine.begin() as conn:
            await conn.run_sync(SessionSlot.metadata.create_all)

        store = DomainStore(bridge or build_bridge(config, host), offline_delay=config.MOCK_DELAY_SECONDS)
        sessions = SessionManager(store, SlotStorage(AsyncSessionLocal), config.SESSION_SLOT_KEY)
        app.state.store = store
        app.state.sessions = sessions

        await store.start()
        user = await sessions.restore()
        if user is not None:
            logging.info("Restored session for %s", user.code or user.email)

        yield

        await store.close()
        await engine.dispose()

    app = FastAPI(title="KPI Dashboard", version="1.0", lifespan=lifespan)

    # Include Routers
    app.include_router(auth.router)
    app.include_router(data.router)
    app.include_router(crud.departments)
    app.include_router(crud.employees)
    app.include_router(crud.kpis)
    app.include_router(crud.activities)
    app.include_router(assignments.router)
    app.include_router(records.router)
    app.include_router(competencies.router)
    app.include_router(dashboard.router)

    @app.get("/")
    def read_root():
        return {"message": "Welcome to the KPI Dashboard API"}

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("kpi_dashboard.main:app", host="0.0.0.0", port=8000, reload=True)
