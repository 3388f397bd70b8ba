import pytest

from kpi_dashboard.core.errors import WorkflowError
from kpi_dashboard.schemas.entities import EvaluationLevel
from kpi_dashboard.schemas.evaluation import CompetencyAssessmentIn, KPIRecordIn
from kpi_dashboard.services.dashboard import build_dashboard
from kpi_dashboard.services.evaluation import (
    assessment_levels, build_competency_records, build_kpi_record, competency_totals,
    find_assignment, visible_records,
)

NOW = "2026-10-01T00:00:00+00:00"


def record_in(**overrides):
    data = dict(employee_id="e1", kpi_id="k1", activity_id="ac1", period="monthly",
                period_detail="month-10-2023", level="GP")
    data.update(overrides)
    return KPIRecordIn(**data)


# --- KPI records ---

async def test_existing_period_record_is_reused(offline_store):
    record = build_kpi_record(offline_store, record_in(), now=NOW)

    assert record.id == "r1"
    assert record.date == "2023-10-01"
    assert record.level == EvaluationLevel.GP
    assert record.score == 3
    assert record.weight == 50
    assert record.weighted_score == 1.5


async def test_new_period_gets_fresh_record(offline_store):
    record = build_kpi_record(offline_store, record_in(period_detail="month-11-2023"), now=NOW)

    assert record.id == ""
    assert record.date == NOW
    assert record.activity_name == "Pull Request Review"

    saved = await offline_store.save_record(record)
    assert saved.id
    assert len(offline_store.records) == 3


async def test_note_defaults_to_rubric(offline_store):
    record = build_kpi_record(offline_store, record_in(level="EP"), now=NOW)
    assert record.note == "Zero production bugs over the period\nImproved the system architecture"

    record = build_kpi_record(offline_store, record_in(level="EP", note="Custom"), now=NOW)
    assert record.note == "Custom"


async def test_level_rule_drives_note_for_kpi_without_rules(offline_store):
    record = build_kpi_record(
        offline_store,
        record_in(kpi_id="k3", activity_id="ac3", period="quarterly", period_detail="q1-2024", level="CP"),
        now=NOW,
    )

    assert record.note.startswith("Collected 100% of risks ahead of the deadline")
    assert record.weighted_score == 0.4


async def test_weight_comes_from_assignment(offline_store):
    await offline_store.save_assignment(
        offline_store.get("assignments", "a1").model_copy(update={"weight": 20})
    )

    record = build_kpi_record(offline_store, record_in(level="EP"), now=NOW)

    assert record.weight == 20
    assert record.weighted_score == 1.0


async def test_manager_comment_is_kept_unless_given(offline_store):
    await offline_store.save_record(
        offline_store.get("records", "r1").model_copy(update={"manager_comment": "Keep it up"})
    )

    assert build_kpi_record(offline_store, record_in(), now=NOW).manager_comment == "Keep it up"
    assert build_kpi_record(offline_store, record_in(manager_comment="Revised"), now=NOW).manager_comment == "Revised"


@pytest.mark.parametrize("overrides, message", [
    ({"employee_id": "nobody"}, "Employee nobody not found"),
    ({"kpi_id": "k9"}, "KPI k9 not found"),
    ({"kpi_id": "k2", "activity_id": "ac2"}, "is not assigned"),
    ({"activity_id": "ac2"}, "not an active activity"),
    ({"id": "r404"}, "Record r404 not found"),
])
async def test_invalid_submissions(offline_store, overrides, message):
    with pytest.raises(WorkflowError, match=message):
        build_kpi_record(offline_store, record_in(**overrides), now=NOW)


async def test_inactive_activity_is_rejected(offline_store):
    offline_store.get("activities", "ac1").active = False

    with pytest.raises(WorkflowError):
        build_kpi_record(offline_store, record_in(), now=NOW)


async def test_find_assignment_excludes_itself(offline_store):
    assert find_assignment(offline_store.assignments, "e1", "k1").id == "a1"
    assert find_assignment(offline_store.assignments, "e1", "k1", exclude_id="a1") is None


async def test_visible_records_by_role(offline_store):
    alice = offline_store.get("employees", "e1")
    bob = offline_store.get("employees", "e2")

    assert len(visible_records(offline_store.records, alice)) == 2
    assert [r.id for r in visible_records(offline_store.records, bob)] == ["r2"]


# --- competencies ---

def assessment(**levels):
    return CompetencyAssessmentIn(employee_id="e2", period="Annual-2026", levels=levels)


async def test_competency_records_and_totals(offline_store):
    records = build_competency_records(offline_store, assessment(c1="GP", c3="EP"), now=NOW)

    assert [r.competency_id for r in records] == ["c1", "c3"]
    assert records[0].score == 100
    assert records[0].weighted_score == 25.0
    assert records[1].weighted_score == 39.0

    totals = competency_totals(offline_store.competencies, {"c1": "GP", "c3": "EP"})
    assert totals == {"total_score": 64.0, "total_weight": 100.0}


async def test_competency_records_reuse_ids_for_period(offline_store):
    first = build_competency_records(offline_store, assessment(c1="GP"), now=NOW)
    saved = await offline_store.save_competency_record(first[0])

    again = build_competency_records(offline_store, assessment(c1="CP", c2="PP"), now=NOW)

    assert again[0].id == saved.id
    assert again[1].id == ""
    assert assessment_levels(offline_store, "e2", "Annual-2026") == {"c1": EvaluationLevel.GP}


async def test_competency_assessment_errors(offline_store):
    with pytest.raises(WorkflowError, match="at least one"):
        build_competency_records(offline_store, assessment())
    with pytest.raises(WorkflowError, match="c99"):
        build_competency_records(offline_store, assessment(c99="GP"))
    with pytest.raises(WorkflowError, match="not found"):
        build_competency_records(
            offline_store,
            CompetencyAssessmentIn(employee_id="x", period="Annual-2026", levels={"c1": "GP"}),
        )


# --- dashboard ---

async def test_employee_dashboard_is_individual(offline_store):
    bob = offline_store.get("employees", "e2")

    card = build_dashboard(offline_store, bob, employee_id="all")

    assert card["individual_view"] is True
    assert card["employee_count"] == 1
    assert card["avg_score"] == 3.0
    assert card["status"] == "On Track"
    assert card["current_level"] == "GP"
    assert card["completion_rate"] == 100
    assert "password" not in card["employee"]
    assert card["department"]["code"] == "HR"


async def test_manager_team_dashboard(offline_store):
    alice = offline_store.get("employees", "e1")

    team = build_dashboard(offline_store, alice, employee_id="all")

    assert team["individual_view"] is False
    assert team["employee_count"] == 2
    assert team["assignment_count"] == 3
    assert team["avg_score"] == 3.5
    assert team["completion_rate"] == 67
    assert [row["id"] for row in team["team_ranking"]] == ["e1", "e2"]
    assert team["kpi_performance"][0]["percentage"] == 80.0
    assert team["employee"] is None


async def test_manager_department_filter(offline_store):
    alice = offline_store.get("employees", "e1")

    hr = build_dashboard(offline_store, alice, department_id="d2", employee_id="all")

    assert hr["employee_count"] == 1
    assert hr["team_ranking"][0]["id"] == "e2"


async def test_department_filter_without_employee_selection(offline_store):
    alice = offline_store.get("employees", "e1")

    hr = build_dashboard(offline_store, alice, department_id="d2")

    assert hr["employee_count"] == 1
    assert hr["individual_view"] is False
    assert [row["id"] for row in hr["team_ranking"]] == ["e2"]
