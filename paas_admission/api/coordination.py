"""API endpoints for inspecting and cleaning up coordination records."""
import logging

from fastapi import APIRouter, HTTPException, Query, status

from paas_admission.coordination.name_registry import NameRegistry, NameRegistryError
from paas_admission.coordination.sweeper import OrphanedNameSweeper, SweepTarget
from paas_admission.models.resources import (
    CFAPP_RESOURCE,
    CFORG_RESOURCE,
    CFROUTE_RESOURCE,
    CFSERVICEBINDING_RESOURCE,
    CFSERVICEINSTANCE_RESOURCE,
    CFSPACE_RESOURCE,
    CFApp,
    CFOrg,
    CFRoute,
    CFServiceBinding,
    CFServiceInstance,
    CFSpace,
)
from paas_admission.models.schemas import NameRecordListResponse, SweepResponse
from paas_admission.services.kubectl import KubectlClient
from paas_admission.webhooks.networking.routes import ROUTE_ENTITY_TYPE
from paas_admission.webhooks.services.bindings import SERVICE_BINDING_ENTITY_TYPE
from paas_admission.webhooks.services.instances import SERVICE_INSTANCE_ENTITY_TYPE
from paas_admission.webhooks.workloads.apps import APP_ENTITY_TYPE
from paas_admission.webhooks.workloads.orgs import CFORG_ENTITY_TYPE
from paas_admission.webhooks.workloads.spaces import CFSPACE_ENTITY_TYPE

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/coordination", tags=["coordination"])

SWEEP_TARGETS = {
    CFORG_ENTITY_TYPE: SweepTarget(CFORG_RESOURCE, CFOrg),
    CFSPACE_ENTITY_TYPE: SweepTarget(CFSPACE_RESOURCE, CFSpace),
    APP_ENTITY_TYPE: SweepTarget(CFAPP_RESOURCE, CFApp),
    ROUTE_ENTITY_TYPE: SweepTarget(CFROUTE_RESOURCE, CFRoute),
    SERVICE_INSTANCE_ENTITY_TYPE: SweepTarget(CFSERVICEINSTANCE_RESOURCE, CFServiceInstance),
    SERVICE_BINDING_ENTITY_TYPE: SweepTarget(CFSERVICEBINDING_RESOURCE, CFServiceBinding),
}

kubectl_client = KubectlClient()
sweeper = OrphanedNameSweeper(kubectl_client, SWEEP_TARGETS)


def _check_entity_type(entity_type: str) -> None:
    if entity_type not in SWEEP_TARGETS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown entity type '{entity_type}', expected one of {sorted(SWEEP_TARGETS)}",
        )


@router.get(
    "/{namespace}",
    response_model=NameRecordListResponse,
    summary="List registered names",
)
def list_names(namespace: str, entity_type: str = Query(..., description="Entity type")):
    """List the names registered for an entity type in a namespace.

    Args:
        namespace: Namespace holding the coordination records
        entity_type: Entity type (e.g. 'app', 'cforg')

    Returns:
        Registered names with owners and lock state

    Raises:
        HTTPException: If the entity type is unknown or listing fails
    """
    _check_entity_type(entity_type)

    try:
        records = NameRegistry(kubectl_client, entity_type).list_names(namespace)
    except NameRegistryError as e:
        logger.error(f"Failed to list {entity_type} names in {namespace}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list coordination records. Check logs for details.",
        )

    return NameRecordListResponse(records=records)


@router.post(
    "/{namespace}/sweep",
    response_model=SweepResponse,
    summary="Deregister orphaned names",
)
def sweep_names(
    namespace: str,
    entity_type: str = Query(..., description="Entity type"),
    dry_run: bool = Query(False, description="Only report orphaned names"),
):
    """Deregister names whose owner is gone or has moved to another name.

    Args:
        namespace: Namespace holding the coordination records
        entity_type: Entity type (e.g. 'app', 'cforg')
        dry_run: Report without deleting

    Returns:
        Deleted and kept records

    Raises:
        HTTPException: If the entity type is unknown or the sweep fails
    """
    _check_entity_type(entity_type)

    try:
        return sweeper.sweep(entity_type, namespace, dry_run=dry_run)
    except NameRegistryError as e:
        logger.error(f"Sweep of {entity_type} names in {namespace} failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Sweep failed. Check logs for details.",
        )
