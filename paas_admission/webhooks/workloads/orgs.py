"""CFOrg admission validation."""
import logging

from paas_admission.models.resources import CFOrg
from paas_admission.webhooks.duplicate_validator import DuplicateValidator
from paas_admission.webhooks.errors import ValidationError
from paas_admission.webhooks.placement import PlacementValidator

logger = logging.getLogger(__name__)

CFORG_ENTITY_TYPE = "cforg"

ORG_NAME_MAX_LENGTH = 63
ORG_NAME_TOO_LONG_ERROR_TYPE = "OrgNameTooLongError"
ORG_NAME_TOO_LONG_ERROR_MESSAGE = f"org name cannot be longer than {ORG_NAME_MAX_LENGTH} chars"


class CFOrgValidator:
    """Orgs live in the root namespace and have unique display names there.

    The org object name is reused as a namespace name and a label value, so it
    is bounded to 63 characters.
    """

    def __init__(
        self,
        duplicate_validator: DuplicateValidator,
        placement_validator: PlacementValidator,
        root_namespace: str,
    ):
        self.duplicate_validator = duplicate_validator
        self.placement_validator = placement_validator
        self.root_namespace = root_namespace

    def validate_create(self, org: CFOrg) -> None:
        self.placement_validator.validate_org_create(org)

        if len(org.metadata.name) > ORG_NAME_MAX_LENGTH:
            raise ValidationError(ORG_NAME_TOO_LONG_ERROR_TYPE, ORG_NAME_TOO_LONG_ERROR_MESSAGE)

        self.duplicate_validator.validate_create(self.root_namespace, org)

    def validate_update(self, old_org: CFOrg, org: CFOrg) -> None:
        if org.is_being_deleted():
            return

        self.duplicate_validator.validate_update(self.root_namespace, old_org, org)

    def validate_delete(self, org: CFOrg) -> None:
        self.duplicate_validator.validate_delete(self.root_namespace, org)
