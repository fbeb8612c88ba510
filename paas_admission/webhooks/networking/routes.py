"""CFRoute admission validation."""
import logging
import re
from typing import Optional

from paas_admission.coordination.context import DeadlineExceededError
from paas_admission.coordination.name_registry import ObjectStore
from paas_admission.models.resources import (
    CFAPP_RESOURCE,
    CFDOMAIN_RESOURCE,
    CFDomain,
    CFRoute,
    ObjectMeta,
)
from paas_admission.services.kubectl import KubectlException, NotFoundError
from paas_admission.webhooks.duplicate_validator import DuplicateValidator
from paas_admission.webhooks.errors import (
    UNKNOWN_ERROR_TYPE,
    ValidationError,
    immutable_field_error,
    unknown_error,
)

logger = logging.getLogger(__name__)

ROUTE_ENTITY_TYPE = "route"

ROUTE_DESTINATION_NOT_IN_SPACE_ERROR_TYPE = "RouteDestinationNotInSpaceError"
ROUTE_DESTINATION_NOT_IN_SPACE_ERROR_MESSAGE = "Route destination app not found in space"
ROUTE_HOST_NAME_VALIDATION_ERROR_TYPE = "RouteHostNameValidationError"
ROUTE_PATH_VALIDATION_ERROR_TYPE = "RoutePathValidationError"
ROUTE_SUBDOMAIN_VALIDATION_ERROR_TYPE = "RouteSubdomainValidationError"
DOMAIN_RETRIEVAL_ERROR_MESSAGE = "Error while retrieving CFDomain object"

HOST_EMPTY_ERROR = "host cannot be empty"
HOST_LENGTH_ERROR = "host is too long (maximum is 63 characters)"
HOST_FORMAT_ERROR = 'host must be either "*" or contain only alphanumeric characters, "_", or "-"'

INVALID_URI_ERROR = "Invalid Route URI"
PATH_IS_SLASH_ERROR = "Path cannot be a single slash"
PATH_HAS_QUESTION_MARK_ERROR = "Path cannot contain a question mark"
PATH_LENGTH_EXCEEDED_ERROR = "Path cannot exceed 128 characters"

DNS1123_SUBDOMAIN_MAX_LENGTH = 253
DNS1123_LABEL_MAX_LENGTH = 63
PATH_MAX_LENGTH = 128

_HOST_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


class UniqueRoute:
    """A route seen through its domain, for duplicate name validation."""

    def __init__(self, route: CFRoute, domain_name: str):
        self.route = route
        self.domain_name = domain_name
        self.metadata: ObjectMeta = route.metadata

    def unique_name(self) -> str:
        return self.route.unique_name()

    def unique_validation_error_message(self) -> str:
        return self.route.unique_validation_error_message(self.domain_name)

    def is_being_deleted(self) -> bool:
        return self.route.is_being_deleted()


def validate_host(host: str) -> Optional[str]:
    """Return the reason a host is invalid, or None."""
    if host == "":
        return HOST_EMPTY_ERROR
    if host == "*":
        return None
    if len(host) > DNS1123_LABEL_MAX_LENGTH:
        return HOST_LENGTH_ERROR
    if not _HOST_PATTERN.match(host):
        return HOST_FORMAT_ERROR
    return None


def validate_fqdn(host: str, domain: str) -> None:
    if len(f"{host}.{domain}") > DNS1123_SUBDOMAIN_MAX_LENGTH:
        raise ValidationError(
            ROUTE_SUBDOMAIN_VALIDATION_ERROR_TYPE,
            f"A valid DNS-1123 subdomain must not exceed {DNS1123_SUBDOMAIN_MAX_LENGTH} characters.",
        )

    reason = validate_host(host)
    if reason:
        raise ValidationError(
            ROUTE_HOST_NAME_VALIDATION_ERROR_TYPE, f'Host "{host}" is not valid: {reason}'
        )


def validate_path(path: str) -> None:
    if path == "":
        return

    reason = None
    if not path.startswith("/") or " " in path or "#" in path:
        reason = INVALID_URI_ERROR
    elif path == "/":
        reason = PATH_IS_SLASH_ERROR
    elif "?" in path:
        reason = PATH_HAS_QUESTION_MARK_ERROR
    elif len(path) > PATH_MAX_LENGTH:
        reason = PATH_LENGTH_EXCEEDED_ERROR

    if reason:
        raise ValidationError(ROUTE_PATH_VALIDATION_ERROR_TYPE, reason)


class CFRouteValidator:
    """Routes are unique per host, domain and path across the whole platform."""

    def __init__(
        self,
        duplicate_validator: DuplicateValidator,
        root_namespace: str,
        client: ObjectStore,
    ):
        self.duplicate_validator = duplicate_validator
        self.root_namespace = root_namespace
        self.client = client

    def validate_create(self, route: CFRoute) -> None:
        domain = self._validate_destinations(route)
        validate_fqdn(route.spec.host, domain.spec.name)
        validate_path(route.spec.path)

        self.duplicate_validator.validate_create(
            self.root_namespace, UniqueRoute(route, domain.spec.name)
        )

    def validate_update(self, old_route: CFRoute, route: CFRoute) -> None:
        if route.is_being_deleted():
            return

        if route.spec.host != old_route.spec.host:
            raise immutable_field_error("CFRoute.Spec.Host")
        if route.spec.path != old_route.spec.path:
            raise immutable_field_error("CFRoute.Spec.Path")
        if route.spec.protocol != old_route.spec.protocol:
            raise immutable_field_error("CFRoute.Spec.Protocol")
        if route.spec.domain_ref.name != old_route.spec.domain_ref.name:
            raise immutable_field_error("CFRoute.Spec.DomainRef.Name")

        domain = self._validate_destinations(route)

        self.duplicate_validator.validate_update(
            self.root_namespace,
            UniqueRoute(old_route, domain.spec.name),
            UniqueRoute(route, domain.spec.name),
        )

    def validate_delete(self, route: CFRoute) -> None:
        self.duplicate_validator.validate_delete(
            self.root_namespace, UniqueRoute(route, route.spec.domain_ref.name)
        )

    def _fetch_domain(self, route: CFRoute) -> CFDomain:
        domain_ref = route.spec.domain_ref
        try:
            data = self.client.get(CFDOMAIN_RESOURCE, domain_ref.namespace, domain_ref.name)
        except (KubectlException, DeadlineExceededError) as e:
            logger.error(f"{DOMAIN_RETRIEVAL_ERROR_MESSAGE}: {e}")
            raise ValidationError(UNKNOWN_ERROR_TYPE, DOMAIN_RETRIEVAL_ERROR_MESSAGE)
        return CFDomain.model_validate(data)

    def _validate_destinations(self, route: CFRoute) -> CFDomain:
        domain = self._fetch_domain(route)

        for destination in route.spec.destinations:
            try:
                self.client.get(CFAPP_RESOURCE, route.metadata.namespace, destination.app_ref.name)
            except NotFoundError:
                logger.info(
                    f"Route {route.metadata.name} destination app "
                    f"{destination.app_ref.name} not found in {route.metadata.namespace}"
                )
                raise ValidationError(
                    ROUTE_DESTINATION_NOT_IN_SPACE_ERROR_TYPE,
                    ROUTE_DESTINATION_NOT_IN_SPACE_ERROR_MESSAGE,
                )
            except (KubectlException, DeadlineExceededError) as e:
                logger.error(f"Failed to check route destination app: {e}")
                raise unknown_error()

        return domain
