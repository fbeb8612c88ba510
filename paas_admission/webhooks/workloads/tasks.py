"""CFTask admission validation."""
from paas_admission.models.resources import CFTask
from paas_admission.webhooks.errors import (
    IMMUTABLE_FIELD_ERROR_TYPE,
    INVALID_FIELD_VALUE_ERROR_TYPE,
    ValidationError,
    missing_required_field_error,
)

TASK_SUCCEEDED_CONDITION = "Succeeded"
TASK_FAILED_CONDITION = "Failed"

CANCELATION_NOT_POSSIBLE_ERROR_TYPE = "CancelationNotPossibleError"


class CFTaskValidator:
    """Tasks need a command and an app; finished tasks cannot be canceled."""

    def validate_create(self, task: CFTask) -> None:
        if not task.spec.command:
            raise missing_required_field_error("Spec.Command")
        if not task.spec.app_ref.name:
            raise missing_required_field_error("Spec.AppRef.Name")

        self._validate_sequence_id(task)

    def validate_update(self, old_task: CFTask, task: CFTask) -> None:
        if task.is_being_deleted():
            return

        self._validate_sequence_id(task)

        # Assigned once by the controller after creation
        old_id = old_task.status.sequence_id
        if old_id != 0 and old_id != task.status.sequence_id:
            raise ValidationError(IMMUTABLE_FIELD_ERROR_TYPE, "SequenceID is immutable")

        if task.spec.canceled and not old_task.spec.canceled:
            if task.status.condition_true(TASK_SUCCEEDED_CONDITION) or task.status.condition_true(
                TASK_FAILED_CONDITION
            ):
                raise ValidationError(
                    CANCELATION_NOT_POSSIBLE_ERROR_TYPE,
                    f"Task '{task.metadata.name}' has already completed and cannot be canceled",
                )

    def validate_delete(self, task: CFTask) -> None:
        return None

    @staticmethod
    def _validate_sequence_id(task: CFTask) -> None:
        if task.status.sequence_id < 0:
            raise ValidationError(INVALID_FIELD_VALUE_ERROR_TYPE, "SequenceID cannot be negative")
