# kpi_dashboard/core/auth.py
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from kpi_dashboard.config import settings
from kpi_dashboard.core.deps import get_sessions
from kpi_dashboard.schemas.entities import Employee, UserRole
from kpi_dashboard.services.session import SessionManager

reusable_oauth2 = HTTPBearer()

async def get_current_user(
    sessions: SessionManager = Depends(get_sessions),
    token: HTTPAuthorizationCredentials = Depends(reusable_oauth2)
) -> Employee:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(
            token.credentials,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
        employee_id: str = payload.get("sub")
        if employee_id is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception

    # the token is only valid for the identity currently signed in
    user = sessions.user
    if user is None or user.id != employee_id:
        raise credentials_exception
    return user


async def get_current_manager(
    current_user: Employee = Depends(get_current_user)
) -> Employee:
    if current_user.role != UserRole.MANAGER:
        raise HTTPException(403, "Manager access required")
    return current_user
