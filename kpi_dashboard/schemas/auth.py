from pydantic import BaseModel, Field
from kpi_dashboard.schemas.entities import Employee

class LoginRequest(BaseModel):
    identifier: str = Field(..., min_length=1)  # employee code or email
    password: str

class Token(BaseModel):
    access_token: str
    token_type: str
    user: Employee
