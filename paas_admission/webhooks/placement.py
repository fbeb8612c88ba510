"""Placement validation: resources must live in the right kind of namespace."""
import logging

from paas_admission.coordination.context import DeadlineExceededError
from paas_admission.coordination.name_registry import ObjectStore
from paas_admission.models.resources import CFORG_RESOURCE, CFOrg, CFSpace
from paas_admission.services.kubectl import KubectlException
from paas_admission.webhooks.errors import ValidationError, unknown_error

logger = logging.getLogger(__name__)

ORG_PLACEMENT_ERROR_TYPE = "OrgPlacementError"
ORG_PLACEMENT_ERROR_MESSAGE = "Organization '{}' must be placed in the root '{}' namespace"
SPACE_PLACEMENT_ERROR_TYPE = "SpacePlacementError"
SPACE_PLACEMENT_ERROR_MESSAGE = (
    "Space '{}' must be placed in an Org namespace, '{}' is not a valid Org namespace"
)


class PlacementValidator:
    """Read-only checks that orgs sit in the root namespace and spaces in an org's."""

    def __init__(self, client: ObjectStore, root_namespace: str):
        self.client = client
        self.root_namespace = root_namespace

    def validate_org_create(self, org: CFOrg) -> None:
        """Raises ValidationError unless the org is in the root namespace."""
        if org.metadata.namespace != self.root_namespace:
            raise ValidationError(
                ORG_PLACEMENT_ERROR_TYPE,
                ORG_PLACEMENT_ERROR_MESSAGE.format(org.spec.display_name, self.root_namespace),
            )

    def validate_space_create(self, space: CFSpace) -> None:
        """Raises ValidationError unless the space namespace belongs to an org.

        Org namespaces are named after the org's object name, so the space
        namespace must match the name of a CFOrg in the root namespace.
        """
        try:
            orgs = self.client.list(CFORG_RESOURCE, self.root_namespace)
        except (KubectlException, DeadlineExceededError) as e:
            logger.error(f"Failed to list orgs in {self.root_namespace}: {e}")
            raise unknown_error()

        org_names = {org.get("metadata", {}).get("name") for org in orgs}
        if space.metadata.namespace not in org_names:
            raise ValidationError(
                SPACE_PLACEMENT_ERROR_TYPE,
                SPACE_PLACEMENT_ERROR_MESSAGE.format(
                    space.spec.display_name, space.metadata.namespace
                ),
            )
