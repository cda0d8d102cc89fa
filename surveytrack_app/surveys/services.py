"""
Survey management workflow over the JSON collections.

SurveyService performs what the management screens and the respondent page
do: create and edit surveys, attach and remove tracking parameters, build
share links, capture visits and submissions. Every mutation or view is
written to the audit trail.
"""

from __future__ import annotations

from typing import Any, Mapping

from django.conf import settings
from django.utils import timezone

from surveytrack_app.core.storage import CollectionStorage, get_storage

from .audit import AuditRecorder
from .codec import decode_parameter, encode_parameter
from .links import build_embed_code, build_survey_url, survey_slug
from .records import (
    AuditAction,
    AuditEntityType,
    Survey,
    SurveyResponse,
    TrackingParameter,
)
from .store import (
    get_survey_responses,
    get_surveys,
    save_survey_responses,
    save_surveys,
)

MASKED_VALUE = "••••••••"

# Suggested parameters offered when adding a parameter to a survey
PRESET_PARAMETERS = [
    {
        "name": "source",
        "label": "Source",
        "placeholder": "e.g., email, social, direct",
        "encrypt": True,
    },
    {
        "name": "unique_id",
        "label": "Unique ID",
        "placeholder": "e.g., user_12345, session_abc",
        "encrypt": True,
    },
    {
        "name": "expiration_date",
        "label": "Expiration Date",
        "placeholder": "e.g., 2024-12-31, 30d",
        "encrypt": False,
    },
    {
        "name": "campaign_id",
        "label": "Campaign ID",
        "placeholder": "e.g., Q4_2024_PROMO, HOLIDAY_SALE",
        "encrypt": True,
    },
]


class SurveyNotFound(Exception):
    """Raised when no survey matches the given id or slug."""

    pass


class ParameterNotFound(Exception):
    """Raised when a survey has no parameter with the given id."""

    pass


def manager_user_id() -> str:
    return getattr(settings, "SURVEYTRACK_MANAGER_USER_ID", "current-user")


def respondent_user_id() -> str:
    return getattr(settings, "SURVEYTRACK_RESPONDENT_USER_ID", "anonymous-user")


def actual_parameter_value(parameter: TrackingParameter) -> str:
    if parameter.is_encrypted:
        return decode_parameter(parameter.value)
    return parameter.value


def display_parameter_value(parameter: TrackingParameter) -> str:
    if parameter.is_encrypted:
        return MASKED_VALUE
    return parameter.value


def resolve_share_parameters(survey: Survey, reveal_encoded: bool) -> dict[str, str]:
    """Pick the value each parameter contributes to a share link.

    Encoded parameters contribute their tagged value in reveal mode and
    their decoded value otherwise. Plain parameters always contribute the
    stored value. A repeated name keeps the last parameter's value.
    """
    params = {}
    for parameter in survey.parameters:
        if reveal_encoded and parameter.is_encrypted:
            params[parameter.name] = parameter.value
        else:
            params[parameter.name] = actual_parameter_value(parameter)
    return params


class SurveyService:
    def __init__(
        self,
        storage: CollectionStorage | None = None,
        recorder: AuditRecorder | None = None,
    ):
        self.storage = storage if storage is not None else get_storage()
        self.recorder = recorder or AuditRecorder(self.storage)

    # -------------------- Surveys --------------------

    def list_surveys(self) -> list[Survey]:
        return get_surveys(self.storage)

    def get_survey(self, survey_id: str) -> Survey:
        return _find(self.list_surveys(), survey_id)

    def find_survey_by_slug(self, slug: str) -> Survey:
        """Resolve a public slug back to its survey; the first match wins."""
        wanted = (slug or "").upper()
        for survey in self.list_surveys():
            if survey_slug(survey.id) == wanted:
                return survey
        raise SurveyNotFound(f"No survey for slug '{slug}'")

    def create_survey(
        self, name: str, description: str = "", user_id: str | None = None
    ) -> Survey:
        user_id = user_id or manager_user_id()
        survey = Survey(name=name, description=description, created_by=user_id)
        surveys = self.list_surveys()
        surveys.append(survey)
        save_surveys(self.storage, surveys)

        self.recorder.record(
            AuditAction.CREATE,
            AuditEntityType.SURVEY,
            survey.id,
            user_id,
            f"Created survey: {survey.name}",
        )
        return survey

    def update_survey(
        self,
        survey_id: str,
        name: str | None = None,
        description: str | None = None,
        is_active: bool | None = None,
        user_id: str | None = None,
    ) -> Survey:
        user_id = user_id or manager_user_id()
        surveys = self.list_surveys()
        survey = _find(surveys, survey_id)

        changes: dict[str, Any] = {}
        if name is not None and name != survey.name:
            changes["name"] = name
        if description is not None and description != survey.description:
            changes["description"] = description
        if is_active is not None and is_active != survey.is_active:
            changes["is_active"] = is_active
        if not changes:
            return survey

        for attr, value in changes.items():
            setattr(survey, attr, value)
        survey.updated_at = timezone.now()
        save_surveys(self.storage, surveys)

        self.recorder.record(
            AuditAction.UPDATE,
            AuditEntityType.SURVEY,
            survey.id,
            user_id,
            f"Updated survey: {survey.name}",
            metadata={"changes": sorted(changes)},
        )
        return survey

    # -------------------- Parameters --------------------

    def add_parameter(
        self,
        survey_id: str,
        name: str,
        value: str,
        encrypt: bool = True,
        user_id: str | None = None,
    ) -> TrackingParameter:
        user_id = user_id or manager_user_id()
        surveys = self.list_surveys()
        survey = _find(surveys, survey_id)

        parameter = TrackingParameter(
            name=name,
            value=encode_parameter(value) if encrypt else value,
            is_encrypted=encrypt,
        )
        survey.append_parameter(parameter)
        save_surveys(self.storage, surveys)

        self.recorder.record(
            AuditAction.ENCRYPT if encrypt else AuditAction.CREATE,
            AuditEntityType.PARAMETER,
            parameter.id,
            user_id,
            f"Added {'encrypted' if encrypt else 'plain'} parameter: {parameter.name}",
            metadata={"surveyId": survey.id, "surveyName": survey.name},
        )
        return parameter

    def delete_parameter(
        self, survey_id: str, parameter_id: str, user_id: str | None = None
    ) -> TrackingParameter:
        user_id = user_id or manager_user_id()
        surveys = self.list_surveys()
        survey = _find(surveys, survey_id)

        parameter = survey.remove_parameter(parameter_id)
        if parameter is None:
            raise ParameterNotFound(
                f"Parameter '{parameter_id}' not found on survey '{survey_id}'"
            )
        save_surveys(self.storage, surveys)

        self.recorder.record(
            AuditAction.DELETE,
            AuditEntityType.PARAMETER,
            parameter_id,
            user_id,
            f"Deleted parameter: {parameter.name}",
            metadata={"surveyId": survey.id, "surveyName": survey.name},
        )
        return parameter

    # -------------------- Sharing --------------------

    def share_link(
        self, survey: Survey, reveal_encoded: bool = False, output: str = "url"
    ) -> str:
        params = resolve_share_parameters(survey, reveal_encoded)
        if output == "embed":
            return build_embed_code(survey.id, params, title=survey.name)
        return build_survey_url(survey.id, params)

    # -------------------- Respondents --------------------

    def view_survey(
        self, survey_id: str, query_params: Mapping[str, str], user_agent: str = ""
    ) -> tuple[Survey, dict[str, str]]:
        """Load a survey for a respondent and decode the parameters they arrived with."""
        survey = self.get_survey(survey_id)
        parameters = {key: decode_parameter(value) for key, value in query_params.items()}

        self.recorder.record(
            AuditAction.VIEW,
            AuditEntityType.SURVEY,
            survey.id,
            respondent_user_id(),
            f"Survey viewed: {survey.name}",
            metadata={"parameters": parameters, "userAgent": user_agent},
        )
        return survey, parameters

    def submit_response(
        self,
        survey_id: str,
        parameters: Mapping[str, str],
        ip_address: str = "",
        user_agent: str = "",
    ) -> SurveyResponse:
        survey = self.get_survey(survey_id)
        decoded = {key: decode_parameter(value) for key, value in parameters.items()}
        response = SurveyResponse(
            survey_id=survey.id,
            parameters=decoded,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        responses = get_survey_responses(self.storage)
        responses.append(response)
        save_survey_responses(self.storage, responses)

        self.recorder.record(
            AuditAction.CREATE,
            AuditEntityType.RESPONSE,
            response.id,
            respondent_user_id(),
            f"Survey response submitted for: {survey.name}",
            metadata={"surveyId": survey.id, "parameters": decoded},
        )
        return response

    def list_responses(self, survey_id: str | None = None) -> list[SurveyResponse]:
        responses = get_survey_responses(self.storage)
        if survey_id is None:
            return responses
        return [r for r in responses if r.survey_id == survey_id]


def _find(surveys: list[Survey], survey_id: str) -> Survey:
    for survey in surveys:
        if survey.id == survey_id:
            return survey
    raise SurveyNotFound(f"Survey '{survey_id}' not found")
