"""Validating admission webhook endpoints."""
import logging
from typing import Dict

from fastapi import APIRouter, HTTPException, status

from paas_admission.config import settings
from paas_admission.coordination.name_registry import NameRegistry, ObjectStore
from paas_admission.models.resources import (
    CFApp,
    CFOrg,
    CFPackage,
    CFRoute,
    CFServiceBinding,
    CFServiceInstance,
    CFSpace,
    CFTask,
)
from paas_admission.models.schemas import AdmissionReview
from paas_admission.services.kubectl import KubectlClient
from paas_admission.webhooks.admission import ValidatingWebhook
from paas_admission.webhooks.duplicate_validator import DuplicateValidator
from paas_admission.webhooks.networking.routes import ROUTE_ENTITY_TYPE, CFRouteValidator
from paas_admission.webhooks.placement import PlacementValidator
from paas_admission.webhooks.services.bindings import (
    SERVICE_BINDING_ENTITY_TYPE,
    CFServiceBindingValidator,
)
from paas_admission.webhooks.services.instances import (
    SERVICE_INSTANCE_ENTITY_TYPE,
    CFServiceInstanceValidator,
)
from paas_admission.webhooks.workloads.apps import APP_ENTITY_TYPE, CFAppValidator
from paas_admission.webhooks.workloads.orgs import CFORG_ENTITY_TYPE, CFOrgValidator
from paas_admission.webhooks.workloads.packages import CFPackageValidator
from paas_admission.webhooks.workloads.spaces import CFSPACE_ENTITY_TYPE, CFSpaceValidator
from paas_admission.webhooks.workloads.tasks import CFTaskValidator

logger = logging.getLogger(__name__)
router = APIRouter(tags=["admission"])

WEBHOOK_PATH_PREFIX = "/validate-korifi-cloudfoundry-org-v1alpha1-"


def build_webhooks(
    client: ObjectStore, root_namespace: str, timeout: float
) -> Dict[str, ValidatingWebhook]:
    """Wire one validating webhook per resource kind.

    Args:
        client: Cluster object store
        root_namespace: Namespace holding orgs and route names
        timeout: Deadline of each admission request in seconds

    Returns:
        Webhooks keyed by lower-case kind (e.g. 'cfapp')
    """

    def duplicates(entity_type: str) -> DuplicateValidator:
        return DuplicateValidator(NameRegistry(client, entity_type))

    placement = PlacementValidator(client, root_namespace)

    validators = {
        CFOrg: CFOrgValidator(duplicates(CFORG_ENTITY_TYPE), placement, root_namespace),
        CFSpace: CFSpaceValidator(duplicates(CFSPACE_ENTITY_TYPE), placement),
        CFApp: CFAppValidator(duplicates(APP_ENTITY_TYPE)),
        CFRoute: CFRouteValidator(duplicates(ROUTE_ENTITY_TYPE), root_namespace, client),
        CFServiceInstance: CFServiceInstanceValidator(duplicates(SERVICE_INSTANCE_ENTITY_TYPE)),
        CFServiceBinding: CFServiceBindingValidator(duplicates(SERVICE_BINDING_ENTITY_TYPE)),
        CFPackage: CFPackageValidator(),
        CFTask: CFTaskValidator(),
    }

    return {
        resource_class.__name__.lower(): ValidatingWebhook(resource_class, validator, timeout)
        for resource_class, validator in validators.items()
    }


kubectl_client = KubectlClient()
webhooks = build_webhooks(kubectl_client, settings.root_namespace, settings.admission_timeout)


@router.post(
    WEBHOOK_PATH_PREFIX + "{kind}",
    summary="Validate a create, update or delete of a PaaS resource",
    response_model_exclude_none=True,
)
def validate(kind: str, review: AdmissionReview):
    """Run the validating webhook of a resource kind.

    Runs in the threadpool so that concurrent admission requests do not
    block each other on kubectl calls.

    Args:
        kind: Lower-case resource kind (e.g. 'cfapp')
        review: AdmissionReview carrying the request

    Returns:
        AdmissionReview carrying the allow/deny response

    Raises:
        HTTPException: If the kind is unknown or the review has no request
    """
    webhook = webhooks.get(kind)
    if webhook is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No validating webhook for kind {kind}",
        )

    if review.request is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="AdmissionReview has no request",
        )

    response = webhook.review(review.request)
    return AdmissionReview(
        api_version=review.api_version,
        response=response,
    ).model_dump(by_alias=True, exclude_none=True)
