"""
Tests for JSON collection persistence.

Covers:
- In-memory and database backends
- Rehydration of timestamps
- Empty results for missing, malformed or unreadable collections
- Dropped writes when a backend fails
"""

from datetime import datetime, timezone as dt_timezone
import json
from unittest.mock import patch

from django.db import DatabaseError
import pytest

from surveytrack_app.core.models import StoredCollection
from surveytrack_app.core.storage import (
    AUDIT_LOGS_KEY,
    RESPONSES_KEY,
    SURVEYS_KEY,
    CollectionStorage,
    DatabaseStorage,
    InMemoryStorage,
    StorageUnavailable,
    get_storage,
    parse_timestamp,
)
from surveytrack_app.surveys.records import (
    AuditLog,
    Survey,
    SurveyResponse,
    TrackingParameter,
)
from surveytrack_app.surveys.store import (
    get_audit_logs,
    get_survey_responses,
    get_surveys,
    save_audit_logs,
    save_survey_responses,
    save_surveys,
)


class BrokenStorage(CollectionStorage):
    def get(self, key):
        raise StorageUnavailable("backend offline")

    def set(self, key, text):
        raise StorageUnavailable("backend offline")

    def delete(self, key):
        raise StorageUnavailable("backend offline")


def make_survey():
    survey = Survey(name="Q4", description="Quarterly", created_by="current-user")
    survey.append_parameter(TrackingParameter(name="segment", value="smb"))
    return survey


class TestInMemoryStorage:
    def test_get_set_delete(self):
        storage = InMemoryStorage()
        assert storage.get("k") is None
        storage.set("k", "v")
        assert storage.get("k") == "v"
        assert storage.keys() == ["k"]
        storage.delete("k")
        storage.delete("k")
        assert storage.get("k") is None

    def test_instances_are_isolated(self):
        a, b = InMemoryStorage(), InMemoryStorage()
        a.set("k", "v")
        assert b.get("k") is None


class TestCollections:
    def test_survey_round_trip(self, storage):
        survey = make_survey()
        save_surveys(storage, [survey])
        assert get_surveys(storage) == [survey]

    def test_timestamps_are_rehydrated(self, storage):
        save_surveys(storage, [make_survey()])
        [loaded] = get_surveys(storage)
        assert isinstance(loaded.created_at, datetime)
        assert loaded.created_at.tzinfo is not None
        assert isinstance(loaded.parameters[0].updated_at, datetime)

    def test_fixed_keys(self, storage):
        save_surveys(storage, [make_survey()])
        save_survey_responses(storage, [SurveyResponse(survey_id="s", parameters={})])
        save_audit_logs(
            storage, [AuditLog("view", "survey", "s", "u", "viewed")]
        )
        assert storage.keys() == sorted([SURVEYS_KEY, RESPONSES_KEY, AUDIT_LOGS_KEY])
        assert json.loads(storage.get(SURVEYS_KEY))[0]["name"] == "Q4"

    def test_responses_and_logs_round_trip(self, storage):
        response = SurveyResponse(
            survey_id="s1",
            parameters={"campaign": "Q4"},
            ip_address="10.0.0.1",
            user_agent="agent",
        )
        log = AuditLog("create", "response", response.id, "u", "submitted", {"k": [1]})
        save_survey_responses(storage, [response])
        save_audit_logs(storage, [log])
        assert get_survey_responses(storage) == [response]
        assert get_audit_logs(storage) == [log]

    def test_missing_collection_is_empty(self, storage):
        assert get_surveys(storage) == []
        assert get_survey_responses(storage) == []
        assert get_audit_logs(storage) == []

    @pytest.mark.parametrize(
        "payload",
        [
            "{not json",
            '{"id": "not a list"}',
            '[{"id": "s1"}]',
            '[{"id": "s1", "name": "x", "created_at": "yesterday", '
            '"updated_at": "yesterday", "parameters": []}]',
            '[{"id": "s1", "name": "x", "created_at": "2024-01-01T00:00:00Z", '
            '"updated_at": "2024-01-01T00:00:00Z", "parameters": null}]',
            "[1, 2]",
        ],
    )
    def test_malformed_collection_is_empty(self, storage, payload):
        storage.set(SURVEYS_KEY, payload)
        assert get_surveys(storage) == []

    def test_non_string_parameter_value_reads_as_empty(self, storage):
        storage.set(
            SURVEYS_KEY,
            json.dumps(
                [
                    {
                        "id": "s1",
                        "name": "x",
                        "created_at": "2024-01-01T00:00:00Z",
                        "updated_at": "2024-01-01T00:00:00Z",
                        "parameters": [
                            {
                                "id": "p1",
                                "name": "n",
                                "value": 42,
                                "created_at": "2024-01-01T00:00:00Z",
                                "updated_at": "2024-01-01T00:00:00Z",
                            }
                        ],
                    }
                ]
            ),
        )
        [survey] = get_surveys(storage)
        assert survey.parameters[0].value == ""

    def test_unreadable_backend_is_empty(self):
        assert get_surveys(BrokenStorage()) == []

    def test_failed_write_is_dropped(self):
        save_surveys(BrokenStorage(), [make_survey()])

    def test_unserializable_metadata_is_dropped(self, storage):
        save_audit_logs(storage, [AuditLog("view", "survey", "s", "u", "d", {"x": object()})])
        assert storage.get(AUDIT_LOGS_KEY) is None


class TestParseTimestamp:
    def test_aware(self):
        parsed = parse_timestamp("2024-06-01T12:30:00+02:00")
        assert parsed == datetime(2024, 6, 1, 10, 30, tzinfo=dt_timezone.utc)

    def test_naive_is_utc(self):
        parsed = parse_timestamp("2024-06-01T12:30:00")
        assert parsed.tzinfo is not None
        assert parsed == datetime(2024, 6, 1, 12, 30, tzinfo=dt_timezone.utc)

    @pytest.mark.parametrize("value", ["", "soon", None, 1700000000])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_timestamp(value)


@pytest.mark.django_db
class TestDatabaseStorage:
    def test_round_trip(self):
        storage = DatabaseStorage()
        assert storage.get("k") is None
        storage.set("k", "one")
        storage.set("k", "two")
        assert storage.get("k") == "two"
        assert StoredCollection.objects.filter(key="k").count() == 1
        storage.delete("k")
        assert storage.get("k") is None

    def test_collections_through_database(self):
        storage = DatabaseStorage()
        survey = make_survey()
        save_surveys(storage, [survey])
        assert get_surveys(storage) == [survey]

    def test_database_errors_become_storage_unavailable(self):
        storage = DatabaseStorage()
        with patch.object(
            StoredCollection.objects, "update_or_create", side_effect=DatabaseError("locked")
        ):
            with pytest.raises(StorageUnavailable):
                storage.set("k", "v")
            save_surveys(storage, [make_survey()])
        assert get_surveys(storage) == []


def test_default_backend_is_database():
    assert isinstance(get_storage(), DatabaseStorage)
    assert get_storage() is get_storage()


def test_backend_follows_settings(settings):
    settings.SURVEYTRACK_STORAGE_BACKEND = "surveytrack_app.core.storage.InMemoryStorage"
    storage = get_storage()
    assert isinstance(storage, InMemoryStorage)
    assert get_storage() is storage
