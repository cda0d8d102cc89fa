from django.core.cache import cache
import pytest
from rest_framework.test import APIClient

from surveytrack_app.core.storage import InMemoryStorage
from surveytrack_app.surveys.audit import AuditRecorder
from surveytrack_app.surveys.services import SurveyService


@pytest.fixture(autouse=True)
def clear_throttle_cache():
    """Keep DRF anon throttle counters from leaking between tests."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def storage():
    """Fresh in-memory collection storage."""
    return InMemoryStorage()


@pytest.fixture
def recorder(storage):
    return AuditRecorder(storage)


@pytest.fixture
def service(storage, recorder):
    return SurveyService(storage=storage, recorder=recorder)


@pytest.fixture
def api_client():
    """Return a fresh API client."""
    return APIClient()
