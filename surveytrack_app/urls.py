from django.urls import include, path

urlpatterns = [
    path("", include("surveytrack_app.core.urls")),
    path("api/", include("surveytrack_app.api.urls")),
]
