"""Required-field checks for account creation requests."""
from __future__ import annotations
from typing import Any, Iterable, Mapping

TEACHER_REQUIRED_FIELDS = ("firstName", "lastName", "email")

STUDENT_REQUIRED_FIELDS = (
    "firstName",
    "lastName",
    "new_type",
    "gendercode",
    "new_chronicdiseases",
    "birthdate",
    "new_nationalid",
    "new_assignedinanoherschool",
    "new_previousassignedschool",
    "new_transferreason",
    "new_ageatnexteducationalyear",
    "academicYearId",
)

PARENT_REQUIRED_FIELDS = (
    "firstName",
    "lastName",
    "email",
    "telephone1",
    "gendercode",
    "familystatuscode",
    "new_academicqualification",
    "jobtitle",
    "new_jobplace",
)


class ValidationError(ValueError):
    """Request rejected before any upstream call.

    Attributes:
        message: Client-visible error message
        missing: Names of the fields that were actually missing
    """

    def __init__(self, message: str, missing: Iterable[str] = ()):
        self.message = message
        self.missing = list(missing)
        super().__init__(message)


def missing_fields(payload: Mapping[str, Any], required: Iterable[str]) -> list[str]:
    """Return required fields that are absent or falsy, in declaration order.

    Empty strings, None, 0 and False all count as missing.
    """
    return [name for name in required if not payload.get(name)]


def validate_teacher(payload: Mapping[str, Any]) -> None:
    """Raises ValidationError listing the fixed teacher field set."""
    missing = missing_fields(payload, TEACHER_REQUIRED_FIELDS)
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(TEACHER_REQUIRED_FIELDS)}", missing)


def validate_student(payload: Mapping[str, Any]) -> None:
    missing = missing_fields(payload, STUDENT_REQUIRED_FIELDS)
    if missing:
        raise ValidationError("Missing required fields for student", missing)


def validate_parent(payload: Mapping[str, Any]) -> None:
    """Raises ValidationError naming exactly the missing parent fields."""
    missing = missing_fields(payload, PARENT_REQUIRED_FIELDS)
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", missing)
