# kpi_dashboard/data/seed.py
# Built-in fixture set used in offline mode and as fallback for level rules
# and competencies.
from kpi_dashboard.schemas.entities import (
    KPI, Activity, Assignment, Competency, CompetencyRecord, Department,
    Employee, EvaluationLevel, KPIRecord, LevelRule, PeriodType, UserRole,
)

initial_departments = [
    Department(id="d1", code="IT", name="Information Technology", manager="John Doe"),
    Department(id="d2", code="HR", name="Human Resources", manager="Jane Smith"),
]

initial_employees = [
    Employee(
        id="e1",
        code="001",
        name="Alice Tech",
        department_id="d1",
        position="Manager",
        email="alice@example.com",
        role=UserRole.MANAGER,
        password="123",
        photo_url="https://images.unsplash.com/photo-1573496359142-b8d87734a5a2?q=80&w=200&auto=format&fit=crop",
    ),
    Employee(
        id="e2",
        code="002",
        name="Bob Human",
        department_id="d2",
        position="Recruiter",
        email="bob@example.com",
        role=UserRole.EMPLOYEE,
        password="123",
    ),
]

initial_kpis = [
    KPI(
        id="k1",
        code="KPI-01",
        name="Code Quality (Bug Rate)",
        activity="Review",
        weight=50,
        period=PeriodType.MONTHLY,
        description="Bugs per line of code",
        evaluation_rules={
            EvaluationLevel.F: ["More than 5 critical bugs found", "Code fails unit tests"],
            EvaluationLevel.UP: ["3-4 critical bugs found", "Fixes delivered late"],
            EvaluationLevel.PP: ["Many minor bugs found", "Test coverage below 60%"],
            EvaluationLevel.GP: ["No critical bug reached production", "Unit test coverage above 80%"],
            EvaluationLevel.CP: ["Clean, readable code that follows the standard", "Delivered 10% ahead of schedule"],
            EvaluationLevel.EP: ["Zero production bugs over the period", "Improved the system architecture"],
        },
    ),
    KPI(
        id="k2",
        code="KPI-02",
        name="Recruitment Success",
        activity="Hiring",
        weight=40,
        period=PeriodType.MONTHLY,
        description="Positions filled within SLA",
        evaluation_rules={
            EvaluationLevel.F: ["No position filled on time", "Candidates fail the basic screening"],
            EvaluationLevel.UP: ["Filled less than 50% of target", "Errors in employment contracts"],
            EvaluationLevel.PP: ["Filled 70% of target", "Hiring took longer than the SLA"],
            EvaluationLevel.GP: ["Filled 100% of target", "Closed within the 45 day SLA"],
            EvaluationLevel.CP: ["Filled and onboarded immediately", "Good feedback from hiring managers"],
            EvaluationLevel.EP: ["Exceeded target (talent pool)", "Cut time-to-hire by 20%"],
        },
    ),
    KPI(
        id="k3",
        code="KPI-03",
        name="Risk Management (ISO31000)",
        activity="Risk Assessment",
        weight=10,
        period=PeriodType.QUARTERLY,
        description="Quarterly Risk Assessment",
    ),
]

initial_assignments = [
    Assignment(id="a1", employee_id="e1", kpi_id="k1", weight=50, assigned_date="2023-01-01"),
    Assignment(id="a2", employee_id="e2", kpi_id="k2", weight=40, assigned_date="2023-01-01"),
    Assignment(id="a3", employee_id="e1", kpi_id="k3", weight=10, assigned_date="2023-01-01"),
]

initial_activities = [
    Activity(id="ac1", kpi_id="k1", code="ACT-01", name="Pull Request Review", description="Reviewing PRs", active=True),
    Activity(id="ac2", kpi_id="k2", code="ACT-02", name="Interviewing", description="Conducting interviews", active=True),
    Activity(id="ac3", kpi_id="k3", code="ACT-03", name="Risk Identification", description="Identify risks", active=True),
]

initial_records = [
    KPIRecord(
        id="r1", date="2023-10-01", employee_id="e1", kpi_id="k1", activity_id="ac1",
        activity_name="Pull Request Review", period="monthly", period_detail="month-10-2023",
        level=EvaluationLevel.CP, score=4, weight=50, weighted_score=2.0,
        note="Clean, readable code that follows the standard\nDelivered 10% ahead of schedule",
        user_note="Good job",
    ),
    KPIRecord(
        id="r2", date="2023-10-01", employee_id="e2", kpi_id="k2", activity_id="ac2",
        activity_name="Interviewing", period="monthly", period_detail="month-10-2023",
        level=EvaluationLevel.GP, score=3, weight=40, weighted_score=1.2,
        note="Filled 100% of target\nClosed within the 45 day SLA",
        user_note="Met target",
    ),
]

# Rubric overrides for KPI-03, which has no evaluation_rules of its own
initial_level_rules = [
    LevelRule(id="lr_k3_f", kpi_id="k3", level=EvaluationLevel.F, description=(
        "No department-level risk assessment\n"
        "Risk control plan missing or not submitted within the quarter\n"
        "Coordination with risk owners has problems"
    )),
    LevelRule(id="lr_k3_up", kpi_id="k3", level=EvaluationLevel.UP, description=(
        "Collected risks for less than 70% of responsible units\n"
        "Risk control plan incomplete or not in the required format\n"
        "Coordination with risk owners has problems"
    )),
    LevelRule(id="lr_k3_pp", kpi_id="k3", level=EvaluationLevel.PP, description=(
        "Collected less than 90% of risks\n"
        "Risk control plan unclear in places\n"
        "Coordination with risk owners without problems"
    )),
    LevelRule(id="lr_k3_gp", kpi_id="k3", level=EvaluationLevel.GP, description=(
        "Collected 100% of department risks within the quarter\n"
        "Risk control plan complete and in the required format\n"
        "Coordination with risk owners without problems"
    )),
    LevelRule(id="lr_k3_cp", kpi_id="k3", level=EvaluationLevel.CP, description=(
        "Collected 100% of risks ahead of the deadline in at least 2 quarters\n"
        "Risk control plan linked to the department's risk trends\n"
        "Data quality ready for organisation-level monitoring\n"
        "Coordination with risk owners without problems"
    )),
    LevelRule(id="lr_k3_ep", kpi_id="k3", level=EvaluationLevel.EP, description=(
        "Collected 100% of risks ahead of the deadline in every quarter\n"
        "Risk control plan is preventive and drives improvement\n"
        "Provides insight used by managers for strategic decisions\n"
        "Coordination with risk owners without problems"
    )),
]

initial_competencies = [
    Competency(
        id="c1", code="C-01", topic="Teamwork",
        definition="Works with others toward shared goals",
        behavior_indicator="Shares information, supports colleagues, resolves conflicts constructively",
        weight=25,
    ),
    Competency(
        id="c2", code="C-02", topic="Customer Focus",
        definition="Understands and serves internal and external customers",
        behavior_indicator="Responds promptly, follows up, anticipates needs",
        weight=25,
    ),
    Competency(
        id="c3", code="C-03", topic="Accountability",
        definition="Owns outcomes and commitments",
        behavior_indicator="Meets deadlines, admits mistakes, fixes root causes",
        weight=30,
    ),
    Competency(
        id="c4", code="C-04", topic="Continuous Learning",
        definition="Develops skills and applies new knowledge",
        behavior_indicator="Seeks feedback, learns new tools, shares lessons learned",
        weight=20,
    ),
]

initial_competency_records: list[CompetencyRecord] = []


def seed_dataset() -> dict:
    """Fresh copies of every seed collection, keyed like the store's collections."""
    return {
        "departments": [d.model_copy(deep=True) for d in initial_departments],
        "employees": [e.model_copy(deep=True) for e in initial_employees],
        "kpis": [k.model_copy(deep=True) for k in initial_kpis],
        "assignments": [a.model_copy(deep=True) for a in initial_assignments],
        "activities": [a.model_copy(deep=True) for a in initial_activities],
        "records": [r.model_copy(deep=True) for r in initial_records],
        "level_rules": [r.model_copy(deep=True) for r in initial_level_rules],
        "competencies": [c.model_copy(deep=True) for c in initial_competencies],
        "competency_records": [r.model_copy(deep=True) for r in initial_competency_records],
    }
