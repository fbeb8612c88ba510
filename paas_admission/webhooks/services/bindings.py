"""CFServiceBinding admission validation."""
from paas_admission.models.resources import CFServiceBinding
from paas_admission.webhooks.duplicate_validator import DuplicateValidator
from paas_admission.webhooks.errors import immutable_field_error

SERVICE_BINDING_ENTITY_TYPE = "servicebinding"


class CFServiceBindingValidator:
    """An app may be bound to a service instance only once.

    The binding name is derived from its references, which therefore cannot
    change after creation; the display name can.
    """

    def __init__(self, duplicate_validator: DuplicateValidator):
        self.duplicate_validator = duplicate_validator

    def validate_create(self, binding: CFServiceBinding) -> None:
        self.duplicate_validator.validate_create(binding.metadata.namespace, binding)

    def validate_update(self, old_binding: CFServiceBinding, binding: CFServiceBinding) -> None:
        if binding.is_being_deleted():
            return

        if binding.spec.app_ref.name != old_binding.spec.app_ref.name:
            raise immutable_field_error("CFServiceBinding.Spec.AppRef.Name")
        if binding.spec.service.name != old_binding.spec.service.name:
            raise immutable_field_error("CFServiceBinding.Spec.Service.Name")
        if binding.spec.service.namespace != old_binding.spec.service.namespace:
            raise immutable_field_error("CFServiceBinding.Spec.Service.Namespace")

    def validate_delete(self, binding: CFServiceBinding) -> None:
        self.duplicate_validator.validate_delete(binding.metadata.namespace, binding)
