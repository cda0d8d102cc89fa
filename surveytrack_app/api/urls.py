from django.urls import include, path
from rest_framework.routers import DefaultRouter

from . import views

router = DefaultRouter()
router.register(r"surveys", views.SurveyViewSet, basename="survey")
router.register(r"audit-logs", views.AuditLogViewSet, basename="audit-log")

urlpatterns = [
    path("health", views.healthcheck, name="healthcheck"),
    path("analytics/", views.analytics, name="analytics"),
    path("parameter-presets/", views.parameter_presets, name="parameter-presets"),
    path("take/<str:survey_ref>/", views.take_survey, name="take-survey"),
    path("", include(router.urls)),
]
