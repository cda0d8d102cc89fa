from __future__ import annotations

from surveytrack_app.core.storage import (
    AUDIT_LOGS_KEY,
    RESPONSES_KEY,
    SURVEYS_KEY,
    CollectionStorage,
    load_collection,
    save_collection,
)

from .records import AuditLog, Survey, SurveyResponse


def get_surveys(storage: CollectionStorage) -> list[Survey]:
    return load_collection(storage, SURVEYS_KEY, Survey.from_dict)


def save_surveys(storage: CollectionStorage, surveys: list[Survey]) -> None:
    save_collection(storage, SURVEYS_KEY, surveys)


def get_survey_responses(storage: CollectionStorage) -> list[SurveyResponse]:
    return load_collection(storage, RESPONSES_KEY, SurveyResponse.from_dict)


def save_survey_responses(
    storage: CollectionStorage, responses: list[SurveyResponse]
) -> None:
    save_collection(storage, RESPONSES_KEY, responses)


def get_audit_logs(storage: CollectionStorage) -> list[AuditLog]:
    """Audit entries, newest first."""
    return load_collection(storage, AUDIT_LOGS_KEY, AuditLog.from_dict)


def save_audit_logs(storage: CollectionStorage, logs: list[AuditLog]) -> None:
    save_collection(storage, AUDIT_LOGS_KEY, logs)
