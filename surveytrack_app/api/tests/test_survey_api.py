"""
Tests for the survey management API.

The API has no accounts: every endpoint is open and actions are recorded
under the configured manager user id. Storage is the default
database-backed collection store.
"""

from urllib.parse import parse_qs, urlsplit

import pytest

from surveytrack_app.core.storage import get_storage
from surveytrack_app.surveys.codec import decode_parameter, is_encoded_parameter
from surveytrack_app.surveys.services import MASKED_VALUE
from surveytrack_app.surveys.store import get_audit_logs, get_surveys


@pytest.fixture
def survey(api_client, db):
    resp = api_client.post(
        "/api/surveys/",
        {"name": "Q4 Customer Satisfaction", "description": "Quarterly"},
        format="json",
    )
    assert resp.status_code == 201, resp.content
    return resp.json()


def add_parameter(api_client, survey_id, name, value, encrypt):
    resp = api_client.post(
        f"/api/surveys/{survey_id}/parameters/",
        {"name": name, "value": value, "encrypt": encrypt},
        format="json",
    )
    assert resp.status_code == 201, resp.content
    return resp.json()


@pytest.mark.django_db
class TestSurveyAPI:
    def test_create_and_list(self, api_client, survey):
        assert survey["name"] == "Q4 Customer Satisfaction"
        assert survey["created_by"] == "current-user"
        assert survey["is_active"] is True
        assert survey["parameters"] == []

        resp = api_client.get("/api/surveys/")
        assert resp.status_code == 200
        assert [s["id"] for s in resp.json()] == [survey["id"]]

    def test_create_requires_name(self, api_client):
        resp = api_client.post("/api/surveys/", {"description": "x"}, format="json")
        assert resp.status_code == 400
        assert "name" in resp.json()
        assert get_surveys(get_storage()) == []

    def test_retrieve(self, api_client, survey):
        resp = api_client.get(f"/api/surveys/{survey['id']}/")
        assert resp.status_code == 200
        assert resp.json()["description"] == "Quarterly"

    def test_retrieve_unknown(self, api_client):
        resp = api_client.get("/api/surveys/missing/")
        assert resp.status_code == 404

    def test_partial_update(self, api_client, survey):
        resp = api_client.patch(
            f"/api/surveys/{survey['id']}/",
            {"is_active": False, "name": "Renamed"},
            format="json",
        )
        assert resp.status_code == 200
        assert resp.json()["is_active"] is False
        assert resp.json()["name"] == "Renamed"
        assert get_audit_logs(get_storage())[0].action == "update"

    def test_partial_update_unknown(self, api_client):
        resp = api_client.patch("/api/surveys/missing/", {"name": "x"}, format="json")
        assert resp.status_code == 404

    def test_add_encrypted_parameter_is_masked(self, api_client, survey):
        param = add_parameter(api_client, survey["id"], "campaign", "Q4_2024", True)
        assert param["is_encrypted"] is True
        assert param["value"] == MASKED_VALUE

        stored = get_surveys(get_storage())[0].parameters[0]
        assert is_encoded_parameter(stored.value)
        assert decode_parameter(stored.value) == "Q4_2024"

        listed = api_client.get(f"/api/surveys/{survey['id']}/").json()
        assert listed["has_encrypted_parameters"] is True
        assert listed["parameters"][0]["value"] == MASKED_VALUE

    def test_add_plain_parameter(self, api_client, survey):
        param = add_parameter(api_client, survey["id"], "segment", "enterprise", False)
        assert param["value"] == "enterprise"
        assert get_audit_logs(get_storage())[0].details == "Added plain parameter: segment"

    def test_parameter_encrypt_defaults_to_true(self, api_client, survey):
        resp = api_client.post(
            f"/api/surveys/{survey['id']}/parameters/",
            {"name": "source", "value": "email"},
            format="json",
        )
        assert resp.status_code == 201
        assert resp.json()["is_encrypted"] is True

    def test_add_parameter_validation(self, api_client, survey):
        resp = api_client.post(
            f"/api/surveys/{survey['id']}/parameters/", {"name": "x"}, format="json"
        )
        assert resp.status_code == 400
        assert "value" in resp.json()

    def test_add_parameter_to_unknown_survey(self, api_client, db):
        resp = api_client.post(
            "/api/surveys/missing/parameters/",
            {"name": "x", "value": "y"},
            format="json",
        )
        assert resp.status_code == 404

    def test_delete_parameter(self, api_client, survey):
        param = add_parameter(api_client, survey["id"], "segment", "smb", False)
        resp = api_client.delete(f"/api/surveys/{survey['id']}/parameters/{param['id']}/")
        assert resp.status_code == 204
        assert get_surveys(get_storage())[0].parameters == []

        log = get_audit_logs(get_storage())[0]
        assert (log.action, log.entity_type, log.entity_id) == ("delete", "parameter", param["id"])
        assert log.metadata["surveyId"] == survey["id"]

    def test_delete_unknown_parameter(self, api_client, survey):
        resp = api_client.delete(f"/api/surveys/{survey['id']}/parameters/missing/")
        assert resp.status_code == 404


@pytest.mark.django_db
class TestShareLinkAPI:
    @pytest.fixture
    def mixed(self, api_client, survey):
        add_parameter(api_client, survey["id"], "campaign", "Q4", True)
        add_parameter(api_client, survey["id"], "segment", "enterprise", False)
        return survey

    def test_default_link_uses_decoded_values(self, api_client, mixed):
        data = api_client.get(f"/api/surveys/{mixed['id']}/link/").json()
        assert data["output"] == "url"
        assert data["reveal"] is False
        parts = urlsplit(data["value"])
        assert parts.netloc == "www.surveysgalore.com"
        assert parts.path == "/" + mixed["id"][:6].upper()
        assert parse_qs(parts.query) == {"campaign": ["Q4"], "segment": ["enterprise"]}
        assert data["parameters"] == [
            {"name": "campaign", "is_encrypted": True, "value": "Q4"},
            {"name": "segment", "is_encrypted": False, "value": "enterprise"},
        ]

    def test_reveal_link_uses_tagged_values(self, api_client, mixed):
        data = api_client.get(f"/api/surveys/{mixed['id']}/link/?reveal=1").json()
        query = parse_qs(urlsplit(data["value"]).query)
        assert data["reveal"] is True
        assert is_encoded_parameter(query["campaign"][0])
        assert query["segment"] == ["enterprise"]

    def test_embed_output(self, api_client, mixed):
        data = api_client.get(f"/api/surveys/{mixed['id']}/link/?output=embed").json()
        assert data["output"] == "embed"
        assert data["value"].startswith("<iframe")
        assert 'title="Q4 Customer Satisfaction"' in data["value"]

    def test_unknown_output(self, api_client, mixed):
        resp = api_client.get(f"/api/surveys/{mixed['id']}/link/?output=pdf")
        assert resp.status_code == 400

    def test_link_for_unknown_survey(self, api_client, db):
        assert api_client.get("/api/surveys/missing/link/").status_code == 404


@pytest.mark.django_db
def test_parameter_presets(api_client):
    resp = api_client.get("/api/parameter-presets/")
    assert resp.status_code == 200
    presets = {p["name"]: p["encrypt"] for p in resp.json()}
    assert presets == {
        "source": True,
        "unique_id": True,
        "expiration_date": False,
        "campaign_id": True,
    }


def test_healthcheck(api_client):
    resp = api_client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
