# kpi_dashboard/services/scoring.py
from datetime import date
from typing import Iterable, List, Optional

from kpi_dashboard.schemas.entities import KPI, EvaluationLevel, LevelRule, PeriodType

LEVEL_ORDER = (
    EvaluationLevel.F,
    EvaluationLevel.UP,
    EvaluationLevel.PP,
    EvaluationLevel.GP,
    EvaluationLevel.CP,
    EvaluationLevel.EP,
)

LEVEL_SCORES = {
    EvaluationLevel.F: 0,
    EvaluationLevel.UP: 1,
    EvaluationLevel.PP: 2,
    EvaluationLevel.GP: 3,
    EvaluationLevel.CP: 4,
    EvaluationLevel.EP: 5,
}

COMPETENCY_SCORES = {
    EvaluationLevel.F: 0,
    EvaluationLevel.UP: 60,
    EvaluationLevel.PP: 85,
    EvaluationLevel.GP: 100,
    EvaluationLevel.CP: 115,
    EvaluationLevel.EP: 130,
}

MAX_KPI_SCORE = LEVEL_SCORES[EvaluationLevel.EP]

DEFAULT_RUBRIC = "Default description based on level."

# (minimum average, level, status label)
PERFORMANCE_BANDS = (
    (4.5, EvaluationLevel.EP, "Elite Performer"),
    (3.5, EvaluationLevel.CP, "High Performer"),
    (2.5, EvaluationLevel.GP, "On Track"),
    (1.5, EvaluationLevel.PP, "Developing"),
)

COMPETENCY_FIRST_YEAR = 2026


def kpi_score(level) -> int:
    return LEVEL_SCORES[EvaluationLevel(level)]


def competency_score(level) -> int:
    return COMPETENCY_SCORES[EvaluationLevel(level)]


def weighted_score(score: float, weight: float, ndigits: Optional[int] = 2) -> float:
    """score × weight / 100. KPI records keep two decimals; pass None to skip rounding."""
    value = score * weight / 100
    return round(value, ndigits) if ndigits is not None else value


def level_for_average(avg: float) -> EvaluationLevel:
    for minimum, level, _ in PERFORMANCE_BANDS:
        if avg >= minimum:
            return level
    return EvaluationLevel.UP if avg >= 0.5 else EvaluationLevel.F


def status_for_average(avg: float) -> str:
    for minimum, _, label in PERFORMANCE_BANDS:
        if avg >= minimum:
            return label
    return "Needs Support"


def rubric_text(kpi: Optional[KPI], level, level_rules: Iterable[LevelRule] = ()) -> str:
    """Rubric note for a KPI at a level.

    A LevelRule for the (kpi, level) pair wins over the KPI's own
    evaluation rules, which win over the default template.
    """
    level = EvaluationLevel(level)
    if kpi is not None:
        for rule in level_rules:
            if rule.kpi_id == kpi.id and rule.level == level and rule.description:
                return rule.description
        criteria = (kpi.evaluation_rules or {}).get(level)
        if criteria:
            return "\n".join(criteria)
    return DEFAULT_RUBRIC


def period_details(period, year: int) -> List[str]:
    """Period-instance keys selectable for a cadence in one year."""
    period = PeriodType(period)
    if period == PeriodType.WEEKLY:
        return [f"week-{i}-{year}" for i in range(1, 53)]
    if period == PeriodType.MONTHLY:
        return [f"month-{i}-{year}" for i in range(1, 13)]
    return [f"q{i}-{year}" for i in range(1, 5)]


def competency_periods(today: Optional[date] = None) -> List[str]:
    """Annual assessment rounds, from 2026 to at least 2030 or next year."""
    current = (today or date.today()).year
    last = max(current + 1, 2030)
    return [f"Annual-{y}" for y in range(COMPETENCY_FIRST_YEAR, last + 1)]


def default_competency_period(today: Optional[date] = None) -> str:
    current = (today or date.today()).year
    return f"Annual-{max(current, COMPETENCY_FIRST_YEAR)}"
