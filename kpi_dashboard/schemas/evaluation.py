from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from kpi_dashboard.schemas.entities import CompetencyRecord, EvaluationLevel

class KPIRecordIn(BaseModel):
    id: Optional[str] = None  # set when editing
    employee_id: str
    kpi_id: str
    activity_id: str
    period: str = Field("monthly", pattern="^(weekly|monthly|quarterly)$")
    period_detail: str = Field(..., min_length=1)
    level: EvaluationLevel
    note: Optional[str] = None  # empty → rubric text
    user_note: str = ""
    progress: Optional[float] = Field(None, ge=0, le=100)
    detail_progress: str = ""
    manager_comment: Optional[str] = None

class CompetencyAssessmentIn(BaseModel):
    employee_id: str
    period: str = Field(..., pattern=r"^Annual-\d{4}$")
    levels: Dict[str, EvaluationLevel]

class CompetencyAssessmentResponse(BaseModel):
    employee_id: str
    period: str
    levels: Dict[str, EvaluationLevel]
    total_score: float
    total_weight: float
    records: List[CompetencyRecord] = []

