"""CFSpace admission validation."""
from paas_admission.models.resources import CFSpace
from paas_admission.webhooks.duplicate_validator import DuplicateValidator
from paas_admission.webhooks.errors import ValidationError
from paas_admission.webhooks.placement import PlacementValidator

CFSPACE_ENTITY_TYPE = "cfspace"

SPACE_NAME_MAX_LENGTH = 63
SPACE_NAME_TOO_LONG_ERROR_TYPE = "SpaceNameTooLongError"
SPACE_NAME_TOO_LONG_ERROR_MESSAGE = (
    f"space name cannot be longer than {SPACE_NAME_MAX_LENGTH} chars"
)


class CFSpaceValidator:
    """Spaces live in an org namespace and are unique per org."""

    def __init__(
        self,
        duplicate_validator: DuplicateValidator,
        placement_validator: PlacementValidator,
    ):
        self.duplicate_validator = duplicate_validator
        self.placement_validator = placement_validator

    def validate_create(self, space: CFSpace) -> None:
        self.placement_validator.validate_space_create(space)

        if len(space.metadata.name) > SPACE_NAME_MAX_LENGTH:
            raise ValidationError(SPACE_NAME_TOO_LONG_ERROR_TYPE, SPACE_NAME_TOO_LONG_ERROR_MESSAGE)

        self.duplicate_validator.validate_create(space.metadata.namespace, space)

    def validate_update(self, old_space: CFSpace, space: CFSpace) -> None:
        if space.is_being_deleted():
            return

        self.duplicate_validator.validate_update(old_space.metadata.namespace, old_space, space)

    def validate_delete(self, space: CFSpace) -> None:
        self.duplicate_validator.validate_delete(space.metadata.namespace, space)
