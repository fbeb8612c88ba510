"""CFPackage admission validation."""
from paas_admission.models.resources import CFPackage
from paas_admission.webhooks.errors import immutable_field_error, missing_required_field_error


class CFPackageValidator:
    """Packages belong to one app and have a fixed type."""

    def validate_create(self, package: CFPackage) -> None:
        if not package.spec.type:
            raise missing_required_field_error("Spec.Type")
        if not package.spec.app_ref.name:
            raise missing_required_field_error("Spec.AppRef.Name")

    def validate_update(self, old_package: CFPackage, package: CFPackage) -> None:
        if package.is_being_deleted():
            return

        if package.spec.type != old_package.spec.type:
            raise immutable_field_error("CFPackage.Spec.Type")
        if package.spec.app_ref.name != old_package.spec.app_ref.name:
            raise immutable_field_error("CFPackage.Spec.AppRef.Name")

    def validate_delete(self, package: CFPackage) -> None:
        return None
