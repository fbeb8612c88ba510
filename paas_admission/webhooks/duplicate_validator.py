"""Duplicate name validation on top of the name registry."""
import logging
from typing import Protocol

from paas_admission.coordination.name_registry import (
    NameRegistry,
    is_already_exists,
    is_transient,
)
from paas_admission.models.resources import ObjectMeta
from paas_admission.webhooks.errors import (
    DUPLICATE_NAME_ERROR_TYPE,
    ValidationError,
    unknown_error,
)

logger = logging.getLogger(__name__)


class UniqueObject(Protocol):
    """What a resource exposes to have its name protected."""

    metadata: ObjectMeta

    def unique_name(self) -> str:
        ...

    def unique_validation_error_message(self) -> str:
        ...

    def is_being_deleted(self) -> bool:
        ...


class DuplicateValidator:
    """Turns name registry outcomes into admission validation errors.

    Taken names become DuplicateNameError with the resource's own message;
    every other registry failure becomes UnknownError so that the request is
    denied rather than allowed unverified.
    """

    def __init__(self, name_registry: NameRegistry):
        self.name_registry = name_registry

    def validate_create(self, namespace: str, obj: UniqueObject) -> None:
        """Register the name of a new resource.

        Raises:
            ValidationError: If the name is taken or could not be registered
        """
        name = obj.unique_name()
        try:
            self.name_registry.register_name(
                namespace, name, obj.metadata.namespace, obj.metadata.name
            )
        except Exception as e:
            raise self._registration_error(e, obj, namespace, name)

    def validate_update(self, namespace: str, old_obj: UniqueObject, obj: UniqueObject) -> None:
        """Move the registration from the old name to the new one.

        The old name is locked while the new one is claimed so that no other
        rename can act on it in between. If the new name cannot be claimed the
        old name is unlocked again and kept.

        Raises:
            ValidationError: If the new name is taken or the move failed
        """
        if obj.is_being_deleted():
            return

        old_name = old_obj.unique_name()
        new_name = obj.unique_name()
        if old_name == new_name:
            return

        try:
            self.name_registry.try_lock_name(namespace, old_name)
        except Exception as e:
            _log_failure(f"acquire lock on old name '{old_name}' in {namespace}", e)
            raise unknown_error()

        try:
            self.name_registry.register_name(
                namespace, new_name, obj.metadata.namespace, obj.metadata.name
            )
        except Exception as e:
            try:
                self.name_registry.unlock_name(namespace, old_name)
            except Exception as unlock_err:
                logger.error(
                    f"Failed to release lock on old name '{old_name}' in {namespace}: {unlock_err}"
                )
            raise self._registration_error(e, obj, namespace, new_name)

        try:
            self.name_registry.deregister_name(namespace, old_name)
        except Exception as e:
            logger.error(
                f"Failed to deregister old name '{old_name}' in {namespace}, "
                f"leaving an orphaned record: {e}"
            )

    def validate_delete(self, namespace: str, obj: UniqueObject) -> None:
        """Release the name of a deleted resource.

        Raises:
            ValidationError: If the name could not be released
        """
        name = obj.unique_name()
        try:
            self.name_registry.deregister_name(namespace, name)
        except Exception as e:
            _log_failure(f"deregister name '{name}' in {namespace}", e)
            raise unknown_error()

    def _registration_error(
        self, err: Exception, obj: UniqueObject, namespace: str, name: str
    ) -> ValidationError:
        if is_already_exists(err):
            logger.info(f"Duplicate {self.name_registry.entity_type} name '{name}' in {namespace}")
            return ValidationError(DUPLICATE_NAME_ERROR_TYPE, obj.unique_validation_error_message())

        _log_failure(f"register name '{name}' in {namespace}", err)
        return unknown_error()


def _log_failure(action: str, err: Exception) -> None:
    # Either way the request is denied; transient failures succeed on resubmit.
    if is_transient(err):
        logger.warning(f"Transient failure to {action}, the request can be retried: {err}")
    else:
        logger.error(f"Failed to {action}: {err}")
