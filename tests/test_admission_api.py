"""Tests for the validating admission endpoints."""
import json
from unittest.mock import Mock, patch

import pytest
from fastapi.testclient import TestClient

from paas_admission.api.admission import build_webhooks
from paas_admission.coordination.context import is_dry_run
from paas_admission.coordination.name_registry import NameRegistry
from paas_admission.main import app
from paas_admission.models.resources import CFORG_RESOURCE, CFApp
from paas_admission.models.schemas import AdmissionRequest, Operation
from paas_admission.webhooks.admission import ValidatingWebhook

ROOT_NS = "cf"
APP_PATH = "/validate-korifi-cloudfoundry-org-v1alpha1-cfapp"


@pytest.fixture
def webhooks(store):
    store.add(CFORG_RESOURCE, {"metadata": {"name": "org-guid", "namespace": ROOT_NS}})
    hooks = build_webhooks(store, ROOT_NS, timeout=10.0)
    with patch("paas_admission.api.admission.webhooks", hooks):
        yield hooks


@pytest.fixture
def client(webhooks):
    """Create FastAPI test client."""
    with patch("paas_admission.main.settings") as mock_settings:
        mock_settings.api_key = "secret"
        yield TestClient(app)


def cfapp(display_name, name="app-guid", lifecycle="buildpack"):
    return {
        "apiVersion": "korifi.cloudfoundry.org/v1alpha1",
        "kind": "CFApp",
        "metadata": {"name": name, "namespace": "space-guid"},
        "spec": {
            "displayName": display_name,
            "desiredState": "STOPPED",
            "lifecycle": {"type": lifecycle, "data": {}},
        },
    }


def review(operation, obj=None, old_obj=None, dry_run=False, uid="req-1"):
    request = {
        "uid": uid,
        "kind": {"group": "korifi.cloudfoundry.org", "version": "v1alpha1", "kind": "CFApp"},
        "operation": operation,
        "namespace": "space-guid",
        "dryRun": dry_run,
    }
    if obj is not None:
        request["object"] = obj
    if old_obj is not None:
        request["oldObject"] = old_obj
    return {"apiVersion": "admission.k8s.io/v1", "kind": "AdmissionReview", "request": request}


def denial(response):
    body = response.json()
    assert body["response"]["allowed"] is False
    status = body["response"]["status"]
    assert status["code"] == 403
    assert status["reason"] == "Forbidden"
    return json.loads(status["message"])


class TestAdmissionEndpoint:
    """Test the AdmissionReview round trip."""

    def test_create_allowed(self, client, store):
        """Test a new app is admitted and its name registered."""
        response = client.post(APP_PATH, json=review("CREATE", cfapp("my-app")))

        assert response.status_code == 200
        body = response.json()
        assert body["apiVersion"] == "admission.k8s.io/v1"
        assert body["kind"] == "AdmissionReview"
        assert body["response"] == {"uid": "req-1", "allowed": True}
        assert store.lease_count("space-guid") == 1

    def test_create_duplicate_denied(self, client):
        """Test a duplicate name is denied with the marshalled error."""
        client.post(APP_PATH, json=review("CREATE", cfapp("my-app")))

        response = client.post(
            APP_PATH, json=review("CREATE", cfapp("My-App", name="app-2"), uid="req-2")
        )

        assert response.json()["response"]["uid"] == "req-2"
        assert denial(response) == {
            "validationErrorType": "DuplicateNameError",
            "message": "App with the name 'My-App' already exists.",
        }

    def test_dry_run_does_not_register(self, client, store):
        """Test dry-run requests are validated without side effects."""
        response = client.post(APP_PATH, json=review("CREATE", cfapp("my-app"), dry_run=True))

        assert response.json()["response"]["allowed"] is True
        assert store.mutations() == 0

    def test_rename(self, client, store):
        """Test an update moves the registered name."""
        client.post(APP_PATH, json=review("CREATE", cfapp("old")))

        response = client.post(
            APP_PATH, json=review("UPDATE", cfapp("new"), old_obj=cfapp("old"))
        )

        assert response.json()["response"]["allowed"] is True
        names = [r.name for r in NameRegistry(store, "app").list_names("space-guid")]
        assert names == ["new"]

    def test_immutable_lifecycle(self, client):
        """Test field immutability denials."""
        response = client.post(
            APP_PATH,
            json=review("UPDATE", cfapp("a", lifecycle="docker"), old_obj=cfapp("a")),
        )

        assert denial(response)["validationErrorType"] == "ImmutableFieldError"

    def test_delete(self, client, store):
        """Test deletes release the name."""
        client.post(APP_PATH, json=review("CREATE", cfapp("my-app")))

        response = client.post(APP_PATH, json=review("DELETE", old_obj=cfapp("my-app")))

        assert response.json()["response"]["allowed"] is True
        assert store.lease_count() == 0

    def test_store_failure_denied_as_unknown(self, client, store):
        """Test store failures deny rather than allow."""
        store.errors["create"] = [RuntimeError("connection refused")]

        response = client.post(APP_PATH, json=review("CREATE", cfapp("my-app")))

        assert denial(response) == {
            "validationErrorType": "UnknownError",
            "message": "An unknown error has occurred",
        }

    def test_undecodable_object_denied(self, client):
        """Test objects that cannot be decoded are denied as unknown errors."""
        obj = cfapp("my-app")
        obj["spec"]["lifecycle"] = "not-an-object"

        response = client.post(APP_PATH, json=review("CREATE", obj))

        assert denial(response)["validationErrorType"] == "UnknownError"

    def test_connect_allowed(self, client, store):
        """Test operations without validation are allowed."""
        response = client.post(APP_PATH, json=review("CONNECT", cfapp("my-app")))

        assert response.json()["response"]["allowed"] is True
        assert store.mutations() == 0

    def test_unknown_kind(self, client):
        """Test kinds without a webhook are rejected."""
        response = client.post(
            "/validate-korifi-cloudfoundry-org-v1alpha1-cfwidget",
            json=review("CREATE", cfapp("x")),
        )

        assert response.status_code == 404

    def test_missing_request(self, client):
        """Test reviews without a request are rejected."""
        response = client.post(APP_PATH, json={"apiVersion": "admission.k8s.io/v1"})

        assert response.status_code == 400

    def test_no_api_key_needed(self, client):
        """Test the API server does not need the operator API key."""
        response = client.post(APP_PATH, json=review("CREATE", cfapp("my-app")))

        assert response.status_code == 200

    def test_all_kinds_wired(self, webhooks):
        """Test every validated kind has a webhook."""
        assert set(webhooks) == {
            "cforg",
            "cfspace",
            "cfapp",
            "cfroute",
            "cfserviceinstance",
            "cfservicebinding",
            "cfpackage",
            "cftask",
        }

    def test_org_and_space_flow(self, client, store):
        """Test orgs and spaces through their endpoints."""
        org = {
            "metadata": {"name": "org-guid", "namespace": ROOT_NS},
            "spec": {"displayName": "my-org"},
        }
        space = {
            "metadata": {"name": "space-guid", "namespace": "nowhere"},
            "spec": {"displayName": "dev"},
        }

        org_response = client.post(
            "/validate-korifi-cloudfoundry-org-v1alpha1-cforg", json=review("CREATE", org)
        )
        space_response = client.post(
            "/validate-korifi-cloudfoundry-org-v1alpha1-cfspace", json=review("CREATE", space)
        )

        assert org_response.json()["response"]["allowed"] is True
        assert denial(space_response)["validationErrorType"] == "SpacePlacementError"


class TestValidatingWebhook:
    """Test dispatch without HTTP."""

    def test_unexpected_exception_is_unknown(self):
        """Test validator crashes deny with unknown error."""
        validator = Mock()
        validator.validate_create.side_effect = ValueError("bug")
        webhook = ValidatingWebhook(CFApp, validator)

        response = webhook.review(
            AdmissionRequest(uid="u", operation=Operation.CREATE, object=cfapp("x"))
        )

        assert response.allowed is False
        assert json.loads(response.status.message)["validationErrorType"] == "UnknownError"

    def test_dry_run_flag_bound(self):
        """Test validators see the request's dry-run flag."""
        seen = []
        validator = Mock()
        validator.validate_create.side_effect = lambda obj: seen.append(is_dry_run())
        webhook = ValidatingWebhook(CFApp, validator)

        webhook.review(
            AdmissionRequest(uid="u", operation=Operation.CREATE, object=cfapp("x"), dry_run=True)
        )

        assert seen == [True]

    def test_delete_decodes_old_object(self):
        """Test deletes validate the old object."""
        validator = Mock()
        webhook = ValidatingWebhook(CFApp, validator)

        response = webhook.review(
            AdmissionRequest(uid="u", operation=Operation.DELETE, old_object=cfapp("gone"))
        )

        assert response.allowed is True
        assert validator.validate_delete.call_args[0][0].spec.display_name == "gone"
