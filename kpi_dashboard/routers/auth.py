# kpi_dashboard/routers/auth.py
from fastapi import APIRouter, Depends, HTTPException, status

from kpi_dashboard.core.auth import get_current_user
from kpi_dashboard.core.deps import get_sessions
from kpi_dashboard.core.security import create_access_token
from kpi_dashboard.schemas.auth import LoginRequest, Token
from kpi_dashboard.schemas.entities import Employee
from kpi_dashboard.services.session import SessionManager


router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=Token)
async def login(body: LoginRequest, sessions: SessionManager = Depends(get_sessions)):
    user = await sessions.login(body.identifier, body.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid employee code/email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token = create_access_token({"sub": user.id, "role": user.role.value})
    return Token(access_token=access_token, token_type="bearer", user=user)


@router.post("/logout")
async def logout(
    sessions: SessionManager = Depends(get_sessions),
    current_user: Employee = Depends(get_current_user)
):
    await sessions.logout()
    return {"message": "Signed out"}


@router.get("/me", response_model=Employee)
async def read_me(current_user: Employee = Depends(get_current_user)):
    return current_user
