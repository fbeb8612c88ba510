"""CFServiceInstance admission validation."""
from paas_admission.models.resources import CFServiceInstance
from paas_admission.webhooks.duplicate_validator import DuplicateValidator
from paas_admission.webhooks.errors import immutable_field_error

SERVICE_INSTANCE_ENTITY_TYPE = "serviceinstance"


class CFServiceInstanceValidator:
    """Service instance names are unique per space; the type is fixed."""

    def __init__(self, duplicate_validator: DuplicateValidator):
        self.duplicate_validator = duplicate_validator

    def validate_create(self, instance: CFServiceInstance) -> None:
        self.duplicate_validator.validate_create(instance.metadata.namespace, instance)

    def validate_update(self, old_instance: CFServiceInstance, instance: CFServiceInstance) -> None:
        if instance.is_being_deleted():
            return

        if instance.spec.type != old_instance.spec.type:
            raise immutable_field_error("CFServiceInstance.Spec.Type")

        self.duplicate_validator.validate_update(
            instance.metadata.namespace, old_instance, instance
        )

    def validate_delete(self, instance: CFServiceInstance) -> None:
        self.duplicate_validator.validate_delete(instance.metadata.namespace, instance)
