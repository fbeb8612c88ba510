"""Admission request dispatch to typed resource validators."""
import logging
from typing import Any, Dict, Generic, Optional, Protocol, Type, TypeVar

import pydantic

from paas_admission.coordination.context import admission_context
from paas_admission.models.resources import Resource
from paas_admission.models.schemas import (
    AdmissionRequest,
    AdmissionResponse,
    AdmissionStatus,
    Operation,
)
from paas_admission.webhooks.errors import ValidationError, unknown_error

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Resource)

DENIED_CODE = 403
DENIED_REASON = "Forbidden"


class ResourceValidator(Protocol):
    def validate_create(self, obj: Any) -> None:
        ...

    def validate_update(self, old_obj: Any, obj: Any) -> None:
        ...

    def validate_delete(self, obj: Any) -> None:
        ...


def allowed(uid: str) -> AdmissionResponse:
    return AdmissionResponse(uid=uid, allowed=True)


def denied(uid: str, err: ValidationError) -> AdmissionResponse:
    return AdmissionResponse(
        uid=uid,
        allowed=False,
        status=AdmissionStatus(code=DENIED_CODE, reason=DENIED_REASON, message=err.marshal()),
    )


class ValidatingWebhook(Generic[R]):
    """Decodes the objects of an admission request and runs one validator.

    Checks run with the request's dry-run flag and deadline bound to the
    current context. Any failure that is not a validation error denies the
    request with the generic unknown error.
    """

    def __init__(
        self,
        resource_class: Type[R],
        validator: ResourceValidator,
        timeout: Optional[float] = None,
    ):
        self.resource_class = resource_class
        self.validator = validator
        self.timeout = timeout

    @property
    def kind(self) -> str:
        return self.resource_class.__name__

    def review(self, request: AdmissionRequest) -> AdmissionResponse:
        try:
            with admission_context(dry_run=bool(request.dry_run), timeout=self.timeout):
                self._dispatch(request)
        except ValidationError as e:
            logger.info(
                f"Denied {request.operation.value} {self.kind} "
                f"{request.namespace}/{request.name}: {e.type}: {e.message}"
            )
            return denied(request.uid, e)
        except Exception as e:
            logger.exception(
                f"Unexpected error validating {request.operation.value} {self.kind} "
                f"{request.namespace}/{request.name}: {e}"
            )
            return denied(request.uid, unknown_error())

        return allowed(request.uid)

    def _dispatch(self, request: AdmissionRequest) -> None:
        if request.operation == Operation.CREATE:
            self.validator.validate_create(self._decode(request.object))
        elif request.operation == Operation.UPDATE:
            old_obj = self._decode(request.old_object)
            obj = self._decode(request.object)
            self.validator.validate_update(old_obj, obj)
        elif request.operation == Operation.DELETE:
            self.validator.validate_delete(self._decode(request.old_object))
        else:
            logger.info(f"Ignoring {request.operation.value} operation on {self.kind}")

    def _decode(self, raw: Optional[Dict[str, Any]]) -> R:
        if raw is None:
            logger.error(f"Admission request carries no {self.kind} object")
            raise unknown_error()
        try:
            return self.resource_class.model_validate(raw)
        except pydantic.ValidationError as e:
            logger.error(f"Failed to decode {self.kind}: {e}")
            raise unknown_error()
