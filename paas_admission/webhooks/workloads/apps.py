"""CFApp admission validation."""
from paas_admission.models.resources import CFApp
from paas_admission.webhooks.duplicate_validator import DuplicateValidator
from paas_admission.webhooks.errors import IMMUTABLE_FIELD_ERROR_TYPE, ValidationError

APP_ENTITY_TYPE = "app"


class CFAppValidator:
    """Apps are unique per space; the lifecycle type is fixed at creation."""

    def __init__(self, duplicate_validator: DuplicateValidator):
        self.duplicate_validator = duplicate_validator

    def validate_create(self, app: CFApp) -> None:
        self.duplicate_validator.validate_create(app.metadata.namespace, app)

    def validate_update(self, old_app: CFApp, app: CFApp) -> None:
        if app.is_being_deleted():
            return

        old_type = old_app.spec.lifecycle.type
        new_type = app.spec.lifecycle.type
        if old_type != new_type:
            raise ValidationError(
                IMMUTABLE_FIELD_ERROR_TYPE,
                f"Lifecycle type cannot be changed from {old_type} to {new_type}",
            )

        self.duplicate_validator.validate_update(app.metadata.namespace, old_app, app)

    def validate_delete(self, app: CFApp) -> None:
        self.duplicate_validator.validate_delete(app.metadata.namespace, app)
