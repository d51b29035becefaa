from gradeflow.core.identifiers import is_valid_identifier
from gradeflow.models.enums import Role

# (list target, per-assessment target) keyed by role
_BACK_TARGETS: dict[Role, tuple[str, str]] = {
    Role.INSTRUCTOR: (
        "/dashboard/instructor/assessments",
        "/dashboard/instructor/assessments/{assessment_id}/submissions",
    ),
    Role.STUDENT: (
        "/dashboard/students/assessment",
        "/dashboard/students/assessment/{assessment_id}",
    ),
}

DEFAULT_TARGET = "/dashboard"


def back_link(role, assessment_id: str | None = None) -> str:
    """Canonical "back" target for a role.

    The assessment id is only used when it is well-formed; otherwise the
    role's list view is returned.
    """
    try:
        targets = _BACK_TARGETS.get(Role(role))
    except ValueError:
        targets = None
    if targets is None:
        return DEFAULT_TARGET

    list_target, detail_target = targets
    if is_valid_identifier(assessment_id):
        return detail_target.format(assessment_id=assessment_id.lower())
    return list_target
