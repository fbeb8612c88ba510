"""Validation errors returned to clients through admission denials."""
import json
from typing import Optional

UNKNOWN_ERROR_TYPE = "UnknownError"
UNKNOWN_ERROR_MESSAGE = "An unknown error has occurred"

DUPLICATE_NAME_ERROR_TYPE = "DuplicateNameError"
IMMUTABLE_FIELD_ERROR_TYPE = "ImmutableFieldError"
IMMUTABLE_FIELD_ERROR_MESSAGE_TEMPLATE = "'{}' field is immutable"
MISSING_REQUIRED_FIELD_ERROR_TYPE = "MissingRequiredFieldError"
INVALID_FIELD_VALUE_ERROR_TYPE = "InvalidFieldValueError"


class ValidationError(Exception):
    """A user-correctable admission failure with a stable type tag.

    Marshals to ``{"validationErrorType": ..., "message": ...}``, the format
    clients parse out of the admission denial message.
    """

    def __init__(self, error_type: str, message: str):
        self.type = error_type
        self.message = message
        super().__init__(self.marshal())

    def marshal(self) -> str:
        return json.dumps({"validationErrorType": self.type, "message": self.message})

    @classmethod
    def unmarshal(cls, raw: str) -> Optional["ValidationError"]:
        """Parse a marshalled error back; returns None if raw is not one."""
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            return None
        if not isinstance(data, dict) or "validationErrorType" not in data:
            return None
        return cls(data["validationErrorType"], data.get("message", ""))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ValidationError):
            return NotImplemented
        return (self.type, self.message) == (other.type, other.message)

    def __hash__(self) -> int:
        return hash((self.type, self.message))

    def __repr__(self) -> str:
        return f"ValidationError(type={self.type!r}, message={self.message!r})"


def unknown_error() -> ValidationError:
    return ValidationError(UNKNOWN_ERROR_TYPE, UNKNOWN_ERROR_MESSAGE)


def immutable_field_error(field: str) -> ValidationError:
    return ValidationError(
        IMMUTABLE_FIELD_ERROR_TYPE, IMMUTABLE_FIELD_ERROR_MESSAGE_TEMPLATE.format(field)
    )


def missing_required_field_error(field: str) -> ValidationError:
    return ValidationError(
        MISSING_REQUIRED_FIELD_ERROR_TYPE, f"missing required field '{field}'"
    )
