"""Tests for the orphaned-name sweep and the operator endpoints."""
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from paas_admission.api.coordination import SWEEP_TARGETS
from paas_admission.coordination.name_registry import NameRegistry
from paas_admission.coordination.sweeper import OrphanedNameSweeper
from paas_admission.main import app
from paas_admission.models.resources import CFAPP_RESOURCE, CFApp
from paas_admission.models.schemas import HolderState
from paas_admission.services.kubectl import KubectlException
from paas_admission.webhooks.duplicate_validator import DuplicateValidator

NS = "space-guid"


def app_object(name, display_name):
    return {
        "metadata": {"name": name, "namespace": NS},
        "spec": {"displayName": display_name, "lifecycle": {"type": "buildpack"}},
    }


def add_app(store, name, display_name):
    store.add(CFAPP_RESOURCE, app_object(name, display_name))


def rename_app(store, name, old_display_name, new_display_name):
    """Admit a rename and store the renamed app, as the API server would."""
    DuplicateValidator(NameRegistry(store, "app")).validate_update(
        NS,
        CFApp.model_validate(app_object(name, old_display_name)),
        CFApp.model_validate(app_object(name, new_display_name)),
    )
    add_app(store, name, new_display_name)


@pytest.fixture
def registry(store):
    return NameRegistry(store, "app")


@pytest.fixture
def sweeper(store):
    return OrphanedNameSweeper(store, SWEEP_TARGETS)


@pytest.fixture
def seeded(store, registry):
    """Apps 'kept' (current), 'moved' (rename lost its old-name cleanup) and a deleted app."""
    add_app(store, "app-1", "Kept")
    registry.register_name(NS, "kept", NS, "app-1")

    add_app(store, "app-2", "moved-old")
    registry.register_name(NS, "moved-old", NS, "app-2")
    store.errors["delete"] = [
        KubectlException(message="kubectl command failed with code 1", command="", stderr="")
    ]
    rename_app(store, "app-2", "moved-old", "moved-new")

    registry.register_name(NS, "gone", NS, "app-3")
    return store


class TestOrphanedNameSweeper:
    """Test the sweep."""

    def test_sweep(self, seeded, sweeper, registry):
        """Test stale names are deregistered and current ones kept."""
        result = sweeper.sweep("app", NS)

        assert sorted(r.name for r in result.deleted) == ["gone", "moved-old"]
        assert sorted(r.name for r in result.kept) == ["kept", "moved-new"]
        assert sorted(r.name for r in registry.list_names(NS)) == ["kept", "moved-new"]

    def test_dry_run(self, seeded, sweeper, registry):
        """Test dry runs only report."""
        mutations = seeded.mutations()

        result = sweeper.sweep("app", NS, dry_run=True)

        assert result.dry_run is True
        assert len(result.deleted) == 2
        assert seeded.mutations() == mutations
        assert len(registry.list_names(NS)) == 4

    def test_interrupted_rename_leaves_locked_name(self, seeded, sweeper, registry):
        """Test the old name of a rename whose cleanup failed is locked and still swept."""
        states = {r.name: r.holder_state for r in registry.list_names(NS)}
        assert states["moved-old"] == HolderState.LOCKED

        result = sweeper.sweep("app", NS)

        deleted = {r.name: r.holder_state for r in result.deleted}
        assert deleted == {"gone": HolderState.UNLOCKED, "moved-old": HolderState.LOCKED}

    def test_locked_name_still_carried_by_owner_kept(self, store, sweeper, registry):
        """Test a rename in flight keeps its locked old name while the owner still has it."""
        add_app(store, "app-4", "renaming")
        registry.register_name(NS, "renaming", NS, "app-4")
        registry.try_lock_name(NS, "renaming")

        result = sweeper.sweep("app", NS)

        assert result.deleted == []
        assert [(r.name, r.holder_state) for r in result.kept] == [
            ("renaming", HolderState.LOCKED)
        ]

    def test_name_held_elsewhere_kept(self, store, sweeper, registry):
        """Test a record is kept when its owner never got its current name."""
        add_app(store, "app-1", "current")
        registry.register_name(NS, "previous", NS, "app-1")

        result = sweeper.sweep("app", NS)

        assert [r.name for r in result.kept] == ["previous"]


@pytest.fixture
def client(seeded):
    """Create FastAPI test client using the in-memory store."""
    sweeper = OrphanedNameSweeper(seeded, SWEEP_TARGETS)
    with patch("paas_admission.main.settings") as mock_settings, patch(
        "paas_admission.api.coordination.kubectl_client", seeded
    ), patch("paas_admission.api.coordination.sweeper", sweeper):
        mock_settings.api_key = ""
        yield TestClient(app)


class TestCoordinationEndpoints:
    """Test operator endpoints."""

    def test_list(self, client):
        """Test listing registered names."""
        response = client.get(f"/api/coordination/{NS}", params={"entity_type": "app"})

        assert response.status_code == 200
        records = response.json()["records"]
        assert sorted(r["name"] for r in records) == ["gone", "kept", "moved-new", "moved-old"]
        states = {r["name"]: r["holder_state"] for r in records}
        assert states == {"gone": "none", "kept": "none", "moved-new": "none", "moved-old": "locked"}

    def test_list_unknown_entity_type(self, client):
        """Test unknown entity types are rejected."""
        response = client.get(f"/api/coordination/{NS}", params={"entity_type": "widget"})

        assert response.status_code == 400
        assert response.json()["error_type"] == "HTTPException"

    def test_list_failure(self, client, seeded):
        """Test store failures are reported without internals."""
        seeded.errors["list"] = [KubectlException(message="boom", command="", stderr="secret")]

        response = client.get(f"/api/coordination/{NS}", params={"entity_type": "app"})

        assert response.status_code == 500
        assert "secret" not in response.text

    def test_sweep(self, client):
        """Test sweeping through the API."""
        response = client.post(
            f"/api/coordination/{NS}/sweep", params={"entity_type": "app", "dry_run": "true"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["dry_run"] is True
        assert sorted(r["name"] for r in data["deleted"]) == ["gone", "moved-old"]


class TestApiKey:
    """Test API key enforcement on operator endpoints."""

    @pytest.fixture
    def secured(self, seeded):
        with patch("paas_admission.main.settings") as mock_settings, patch(
            "paas_admission.api.coordination.kubectl_client", seeded
        ):
            mock_settings.api_key = "secret"
            yield TestClient(app)

    def test_missing_key(self, secured):
        """Test requests without the key are rejected."""
        response = secured.get(f"/api/coordination/{NS}", params={"entity_type": "app"})

        assert response.status_code == 401

    def test_valid_key(self, secured):
        """Test requests with the key are served."""
        response = secured.get(
            f"/api/coordination/{NS}",
            params={"entity_type": "app"},
            headers={"X-API-Key": "secret"},
        )

        assert response.status_code == 200

    def test_health_is_public(self, secured):
        """Test the health endpoint needs no key."""
        with patch("paas_admission.main.KubectlClient") as mock_kubectl:
            mock_kubectl.return_value.get_version.return_value = "v1.29.0"

            response = secured.get("/health")

        assert response.status_code == 200


class TestHealthEndpoint:
    """Test health check endpoint."""

    def test_health_check_healthy(self, client):
        """Test health check when kubectl is available."""
        with patch("paas_admission.main.KubectlClient") as mock_kubectl:
            mock_kubectl.return_value.get_version.return_value = "v1.29.0"

            response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["kubectl_version"] == "v1.29.0"

    def test_health_check_degraded(self, client):
        """Test health check when kubectl is unavailable."""
        with patch("paas_admission.main.KubectlClient") as mock_kubectl:
            mock_kubectl.return_value.get_version.side_effect = KubectlException(
                message="kubectl binary not found: kubectl", command="kubectl version", stderr=""
            )

            response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"
