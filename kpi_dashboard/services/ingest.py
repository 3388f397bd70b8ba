# kpi_dashboard/services/ingest.py
# Parses the getAllData payload into typed collections.
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Type

from pydantic import ValidationError

from kpi_dashboard.core.errors import DecodingError
from kpi_dashboard.data.seed import initial_competencies, initial_level_rules
from kpi_dashboard.schemas.entities import (
    KPI, Activity, Assignment, Competency, CompetencyRecord, Department,
    Employee, Entity, KPIRecord, LevelRule,
)

logger = logging.getLogger(__name__)

# store collection -> (wire key, model)
COLLECTIONS: Dict[str, tuple] = {
    "departments": ("departments", Department),
    "employees": ("employees", Employee),
    "kpis": ("kpis", KPI),
    "assignments": ("assignments", Assignment),
    "activities": ("activities", Activity),
    "records": ("records", KPIRecord),
    "level_rules": ("levelRules", LevelRule),
    "competencies": ("competencies", Competency),
    "competency_records": ("competencyRecords", CompetencyRecord),
}


@dataclass
class Dataset:
    collections: Dict[str, List[Entity]] = field(default_factory=dict)
    errors: List[DecodingError] = field(default_factory=list)


def parse_collection(name: str, model: Type[Entity], items) -> tuple:
    parsed: List[Entity] = []
    errors: List[DecodingError] = []
    for item in items or []:
        record_id = item.get("id") if isinstance(item, dict) else None
        if not isinstance(item, dict):
            errors.append(DecodingError(name, record_id, "record is not an object"))
            continue
        if record_id is None or str(record_id).strip() == "":
            errors.append(DecodingError(name, record_id, "missing id"))
            continue
        try:
            parsed.append(model.model_validate(item))
        except ValidationError as e:
            first = e.errors()[0]
            where = ".".join(str(p) for p in first["loc"])
            errors.append(DecodingError(name, record_id, f"{where}: {first['msg']}"))
    return parsed, errors


def parse_dataset(data: dict) -> Dataset:
    """Validate every collection; malformed records are rejected one by one."""
    dataset = Dataset()
    for name, (wire_key, model) in COLLECTIONS.items():
        parsed, errors = parse_collection(name, model, data.get(wire_key))
        dataset.collections[name] = parsed
        dataset.errors.extend(errors)

    # Sheets without these tabs still get a usable rubric and competency list
    if not dataset.collections["level_rules"]:
        dataset.collections["level_rules"] = [r.model_copy(deep=True) for r in initial_level_rules]
    if not dataset.collections["competencies"]:
        dataset.collections["competencies"] = [c.model_copy(deep=True) for c in initial_competencies]

    for err in dataset.errors:
        logger.warning("Rejected record %s", err)
    return dataset
