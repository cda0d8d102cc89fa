from typing import Any

from django.views.decorators.clickjacking import xframe_options_exempt
from rest_framework import permissions, serializers, status, viewsets
from rest_framework.decorators import (
    action,
    api_view,
    permission_classes,
    throttle_classes,
)
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView

from surveytrack_app.surveys.analytics import DEFAULT_TIME_RANGE, summarize
from surveytrack_app.surveys.audit import filter_audit_logs
from surveytrack_app.surveys.records import (
    AuditAction,
    AuditEntityType,
    AuditLog,
    Survey,
    SurveyResponse,
    TrackingParameter,
)
from surveytrack_app.surveys.services import (
    PRESET_PARAMETERS,
    ParameterNotFound,
    SurveyNotFound,
    SurveyService,
    display_parameter_value,
    resolve_share_parameters,
)

TRUTHY = {"1", "true", "yes", "on"}
OUTPUT_TYPES = ("url", "embed")


class SurveyCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, default="")


class SurveyUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    is_active = serializers.BooleanField(required=False)


class ParameterCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    value = serializers.CharField(allow_blank=True, trim_whitespace=False)
    encrypt = serializers.BooleanField(default=True)


class ResponseSubmitSerializer(serializers.Serializer):
    parameters = serializers.DictField(
        child=serializers.CharField(allow_blank=True, trim_whitespace=False),
        required=False,
    )


def parameter_data(parameter: TrackingParameter) -> dict[str, Any]:
    # Encoded values never leave the manager API in raw form
    return {
        "id": parameter.id,
        "name": parameter.name,
        "value": display_parameter_value(parameter),
        "is_encrypted": parameter.is_encrypted,
        "created_at": parameter.created_at,
        "updated_at": parameter.updated_at,
    }


def survey_data(survey: Survey) -> dict[str, Any]:
    return {
        "id": survey.id,
        "name": survey.name,
        "description": survey.description,
        "created_at": survey.created_at,
        "updated_at": survey.updated_at,
        "created_by": survey.created_by,
        "is_active": survey.is_active,
        "has_encrypted_parameters": survey.has_encrypted_parameters,
        "parameters": [parameter_data(p) for p in survey.parameters],
    }


def response_data(response: SurveyResponse) -> dict[str, Any]:
    return response.to_dict()


def audit_data(log: AuditLog) -> dict[str, Any]:
    data = log.to_dict()
    data.setdefault("metadata", None)
    return data


def _flag(value: str | None) -> bool:
    return (value or "").strip().lower() in TRUTHY


class SurveyViewSet(viewsets.ViewSet):
    """
    Survey management.

    GET /api/surveys/ - List surveys
    POST /api/surveys/ - Create survey
    GET /api/surveys/{id}/ - Retrieve survey
    PATCH /api/surveys/{id}/ - Update name, description or active flag
    POST /api/surveys/{id}/parameters/ - Add a tracking parameter
    DELETE /api/surveys/{id}/parameters/{parameter_id}/ - Remove a parameter
    GET /api/surveys/{id}/link/?reveal=1&output=embed - Share URL or embed code
    GET /api/surveys/{id}/responses/ - Responses collected for the survey
    """

    def get_service(self) -> SurveyService:
        return SurveyService()

    def get_survey(self, service: SurveyService, pk: str) -> Survey:
        try:
            return service.get_survey(pk)
        except SurveyNotFound as exc:
            raise NotFound(str(exc))

    def list(self, request):
        surveys = self.get_service().list_surveys()
        return Response([survey_data(s) for s in surveys])

    def create(self, request):
        ser = SurveyCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        survey = self.get_service().create_survey(
            ser.validated_data["name"], ser.validated_data["description"]
        )
        return Response(survey_data(survey), status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        survey = self.get_survey(self.get_service(), pk)
        return Response(survey_data(survey))

    def partial_update(self, request, pk=None):
        ser = SurveyUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        try:
            survey = self.get_service().update_survey(pk, **ser.validated_data)
        except SurveyNotFound as exc:
            raise NotFound(str(exc))
        return Response(survey_data(survey))

    @action(detail=True, methods=["post"])
    def parameters(self, request, pk=None):
        ser = ParameterCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        try:
            parameter = self.get_service().add_parameter(pk, **ser.validated_data)
        except SurveyNotFound as exc:
            raise NotFound(str(exc))
        return Response(parameter_data(parameter), status=status.HTTP_201_CREATED)

    @action(
        detail=True,
        methods=["delete"],
        url_path=r"parameters/(?P<parameter_id>[^/.]+)",
    )
    def delete_parameter(self, request, pk=None, parameter_id=None):
        try:
            self.get_service().delete_parameter(pk, parameter_id)
        except (SurveyNotFound, ParameterNotFound) as exc:
            raise NotFound(str(exc))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["get"])
    def link(self, request, pk=None):
        service = self.get_service()
        survey = self.get_survey(service, pk)
        reveal = _flag(request.query_params.get("reveal"))
        output = request.query_params.get("output", "url")
        if output not in OUTPUT_TYPES:
            raise ValidationError(
                {"output": f"Must be one of: {', '.join(OUTPUT_TYPES)}"}
            )

        values = resolve_share_parameters(survey, reveal)
        return Response(
            {
                "output": output,
                "reveal": reveal,
                "value": service.share_link(survey, reveal_encoded=reveal, output=output),
                "parameters": [
                    {
                        "name": p.name,
                        "is_encrypted": p.is_encrypted,
                        "value": values[p.name],
                    }
                    for p in survey.parameters
                ],
            }
        )

    @action(detail=True, methods=["get"])
    def responses(self, request, pk=None):
        service = self.get_service()
        survey = self.get_survey(service, pk)
        return Response([response_data(r) for r in service.list_responses(survey.id)])


class TakeSurveyView(APIView):
    """Respondent entry point, addressed by survey id or public slug.

    GET decodes the query parameters the respondent arrived with and records
    the view. POST stores a response with the submitted parameters, falling
    back to the query string when the body carries none.
    """

    def resolve(self, service: SurveyService, ref: str) -> Survey:
        try:
            return service.get_survey(ref)
        except SurveyNotFound:
            pass
        try:
            return service.find_survey_by_slug(ref)
        except SurveyNotFound as exc:
            raise NotFound(str(exc))

    def get(self, request, survey_ref):
        service = SurveyService()
        survey = self.resolve(service, survey_ref)
        survey, parameters = service.view_survey(
            survey.id,
            request.query_params,
            user_agent=request.META.get("HTTP_USER_AGENT", ""),
        )
        return Response(
            {
                "survey": {
                    "id": survey.id,
                    "name": survey.name,
                    "description": survey.description,
                    "is_active": survey.is_active,
                },
                "parameters": parameters,
            }
        )

    def post(self, request, survey_ref):
        ser = ResponseSubmitSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        parameters = ser.validated_data.get("parameters")
        if parameters is None:
            parameters = request.query_params

        service = SurveyService()
        survey = self.resolve(service, survey_ref)
        response = service.submit_response(
            survey.id,
            parameters,
            ip_address=request.META.get("REMOTE_ADDR", ""),
            user_agent=request.META.get("HTTP_USER_AGENT", ""),
        )
        return Response(response_data(response), status=status.HTTP_201_CREATED)


take_survey = xframe_options_exempt(TakeSurveyView.as_view())


class AuditLogViewSet(viewsets.ViewSet):
    """
    GET /api/audit-logs/?action=&entity_type=&search= - Filtered audit trail, newest first
    """

    def list(self, request):
        params = request.query_params
        action_filter = params.get("action", "all")
        entity_filter = params.get("entity_type", "all")
        if action_filter != "all" and action_filter not in AuditAction.values:
            raise ValidationError(
                {"action": f"Must be one of: all, {', '.join(AuditAction.values)}"}
            )
        if entity_filter != "all" and entity_filter not in AuditEntityType.values:
            raise ValidationError(
                {
                    "entity_type": f"Must be one of: all, {', '.join(AuditEntityType.values)}"
                }
            )

        logs = filter_audit_logs(
            SurveyService().recorder.list(),
            action=action_filter,
            entity_type=entity_filter,
            search=params.get("search", ""),
        )
        return Response([audit_data(log) for log in logs])


@api_view(["GET"])
def analytics(request):
    service = SurveyService()
    summary = summarize(
        service.list_surveys(),
        service.list_responses(),
        survey_id=request.query_params.get("survey", "all"),
        time_range=request.query_params.get("range", DEFAULT_TIME_RANGE),
    )
    return Response(summary)


@api_view(["GET"])
def parameter_presets(request):
    return Response(PRESET_PARAMETERS)


@api_view(["GET"])
@permission_classes([permissions.AllowAny])
@throttle_classes([])
def healthcheck(request):
    return Response({"status": "ok"})
