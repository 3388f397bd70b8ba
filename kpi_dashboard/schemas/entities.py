import json
import logging
from enum import Enum
from typing import Annotated, Dict, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


def _as_text(value) -> str:
    """Spreadsheet cells arrive as numbers, None or padded strings."""
    if value is None:
        return ""
    # str() of a str-Enum member is "Class.MEMBER" on 3.11+
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _as_number(value):
    if value is None or (isinstance(value, str) and not value.strip()):
        return 0
    return value


Text = Annotated[str, BeforeValidator(_as_text)]
Number = Annotated[float, BeforeValidator(_as_number)]


class EvaluationLevel(str, Enum):
    F = "F"
    UP = "UP"
    PP = "PP"
    GP = "GP"
    CP = "CP"
    EP = "EP"


class PeriodType(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"


class UserRole(str, Enum):
    MANAGER = "manager"
    EMPLOYEE = "employee"


class Entity(BaseModel):
    """Flat record keyed by a string id. Wire names are camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: Text = ""

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class Department(Entity):
    code: Text = ""
    name: Text = ""
    manager: Text = ""


class Employee(Entity):
    code: Text = ""
    name: Text = ""
    department_id: Text = ""
    position: Text = ""
    email: Text = ""
    role: UserRole = UserRole.EMPLOYEE
    password: Text = ""
    photo_url: Text = ""

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, value):
        role = _as_text(value).lower()
        if role in (UserRole.MANAGER.value, UserRole.EMPLOYEE.value):
            return role
        if role:
            logger.warning("Unknown employee role %r, treating as employee", value)
        return UserRole.EMPLOYEE

    @field_validator("email", mode="after")
    @classmethod
    def lower_email(cls, value: str) -> str:
        return value.lower()


class KPI(Entity):
    code: Text = ""
    name: Text = ""
    activity: Text = ""
    weight: Number = 0
    period: PeriodType = PeriodType.MONTHLY
    description: Text = ""
    evaluation_rules: Optional[Dict[EvaluationLevel, List[str]]] = None

    @field_validator("period", mode="before")
    @classmethod
    def lower_period(cls, value):
        return _as_text(value).lower() or PeriodType.MONTHLY

    @field_validator("evaluation_rules", mode="before")
    @classmethod
    def parse_rules(cls, value):
        # The sheet stores the rubric map as a JSON string
        if isinstance(value, str):
            return json.loads(value) if value.strip() else None
        return value or None


class Assignment(Entity):
    employee_id: Text = ""
    kpi_id: Text = ""
    weight: Number = 0
    assigned_date: Text = ""


class Activity(Entity):
    kpi_id: Text = ""
    code: Text = ""
    name: Text = ""
    description: Text = ""
    active: bool = True


class KPIRecord(Entity):
    date: Text = ""
    employee_id: Text = ""
    kpi_id: Text = ""
    activity_id: Text = ""
    activity_name: Text = ""
    period: Text = ""
    period_detail: Text = ""
    level: EvaluationLevel
    score: Number = 0
    weight: Number = 0
    weighted_score: Number = 0
    note: Text = ""
    user_note: Text = ""
    progress: Optional[float] = Field(None, ge=0, le=100)
    detail_progress: Text = ""
    manager_comment: Text = ""

    @field_validator("progress", mode="before")
    @classmethod
    def blank_progress(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class LevelRule(Entity):
    kpi_id: Text = ""
    level: EvaluationLevel
    description: Text = ""
    employee_id: Text = ""
    employee_name: Text = ""
    kpi_name: Text = ""


class Competency(Entity):
    code: Text = ""
    topic: Text = ""
    definition: Text = ""
    behavior_indicator: Text = ""
    weight: Number = 0


class CompetencyRecord(Entity):
    date: Text = ""
    employee_id: Text = ""
    competency_id: Text = ""
    period: Text = ""
    level: EvaluationLevel
    score: Number = 0
    weight: Number = 0
    weighted_score: Number = 0
