"""Name registry backed by coordination Leases.

One Lease per (entity type, display name) is created in the namespace the
name must be unique within. The Lease name is derived from the entity type
and display name, so concurrent registrations of the same name target the
same object and the API server's create-if-absent semantics pick exactly
one winner.

The Lease holder identity doubles as a lock flag ("none" / "locked") that is
flipped with test-and-replace JSON patches.
"""
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Protocol

from paas_admission.config import settings
from paas_admission.coordination.context import (
    DeadlineExceededError,
    current_context,
    is_dry_run,
)
from paas_admission.models.schemas import HolderState, NameRecord
from paas_admission.services.kubectl import (
    AlreadyExistsError,
    ConflictError,
    KubectlException,
    KubectlTimeoutError,
    NotFoundError,
)
from paas_admission.services.naming import hash_name

logger = logging.getLogger(__name__)

LEASE_RESOURCE = "leases.coordination.k8s.io"

ANNOTATION_PREFIX = "coordination.cloudfoundry.org"
ENTITY_TYPE_KEY = f"{ANNOTATION_PREFIX}/entity-type"
NAMESPACE_KEY = f"{ANNOTATION_PREFIX}/namespace"
NAME_KEY = f"{ANNOTATION_PREFIX}/name"
OWNER_NAMESPACE_KEY = f"{ANNOTATION_PREFIX}/owner-namespace"
OWNER_NAME_KEY = f"{ANNOTATION_PREFIX}/owner-name"

HOLDER_IDENTITY_PATH = "/spec/holderIdentity"


class ObjectStore(Protocol):
    """Single-object operations the registry needs from the cluster."""

    def create(self, manifest: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def get(self, resource: str, namespace: str, name: str) -> Dict[str, Any]:
        ...

    def list(
        self, resource: str, namespace: str, label_selector: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        ...

    def delete(self, resource: str, namespace: str, name: str) -> None:
        ...

    def patch_json(
        self, resource: str, namespace: str, name: str, operations: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        ...


class NameRegistryError(Exception):
    """A store operation failed; wraps the store error with context."""

    def __init__(self, message: str, cause: Exception):
        self.message = message
        self.cause = cause
        super().__init__(f"{message}: {cause}")

    @property
    def reason(self) -> str:
        if isinstance(self.cause, DeadlineExceededError):
            return "DeadlineExceeded"
        return getattr(self.cause, "reason", "Unknown")


def _cause(err: Exception) -> Exception:
    return err.cause if isinstance(err, NameRegistryError) else err


def is_already_exists(err: Exception) -> bool:
    return isinstance(_cause(err), AlreadyExistsError)


def is_not_found(err: Exception) -> bool:
    return isinstance(_cause(err), NotFoundError)


def is_transient(err: Exception) -> bool:
    """Conflicts, vanished records and timeouts, as opposed to broken requests."""
    return isinstance(
        _cause(err),
        (NotFoundError, ConflictError, KubectlTimeoutError, DeadlineExceededError),
    )


class NameRegistry:
    """Registers, locks and releases unique names for one entity type."""

    def __init__(
        self,
        client: ObjectStore,
        entity_type: str,
        retry_attempts: Optional[int] = None,
        retry_initial_delay: Optional[float] = None,
        retry_max_delay: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.entity_type = entity_type
        self.retry_attempts = max(
            1, retry_attempts if retry_attempts is not None else settings.lock_retry_attempts
        )
        self.retry_initial_delay = (
            retry_initial_delay
            if retry_initial_delay is not None
            else settings.lock_retry_initial_delay
        )
        self.retry_max_delay = (
            retry_max_delay if retry_max_delay is not None else settings.lock_retry_max_delay
        )
        self._sleep = sleep

    def lease_name(self, name: str) -> str:
        return hash_name(self.entity_type, name)

    def register_name(
        self, namespace: str, name: str, owner_namespace: str, owner_name: str
    ) -> None:
        """Claim a name by creating its Lease.

        Args:
            namespace: Namespace the name must be unique within
            name: Display name to claim
            owner_namespace: Namespace of the claiming resource
            owner_name: Name of the claiming resource

        Raises:
            NameRegistryError: If the Lease could not be created; test with
                is_already_exists() to detect a taken name
        """
        if is_dry_run():
            return

        lease = {
            "apiVersion": "coordination.k8s.io/v1",
            "kind": "Lease",
            "metadata": {
                "name": self.lease_name(name),
                "namespace": namespace,
                "labels": {ENTITY_TYPE_KEY: self.entity_type},
                "annotations": {
                    ENTITY_TYPE_KEY: self.entity_type,
                    NAMESPACE_KEY: namespace,
                    NAME_KEY: name,
                    OWNER_NAMESPACE_KEY: owner_namespace,
                    OWNER_NAME_KEY: owner_name,
                },
            },
            "spec": {
                "holderIdentity": HolderState.UNLOCKED.value,
            },
        }

        try:
            self.client.create(lease)
        except (KubectlException, DeadlineExceededError) as e:
            raise NameRegistryError("creating a lease failed", e)

        logger.info(
            f"Registered {self.entity_type} name '{name}' in {namespace} "
            f"for {owner_namespace}/{owner_name}"
        )

    def deregister_name(self, namespace: str, name: str) -> None:
        """Release a name by deleting its Lease. Missing Leases are ignored.

        Locked names are deleted as well so that locks never block cleanup.
        """
        if is_dry_run():
            return

        try:
            self.client.delete(LEASE_RESOURCE, namespace, self.lease_name(name))
        except NotFoundError:
            logger.debug(f"{self.entity_type} name '{name}' in {namespace} already released")
            return
        except (KubectlException, DeadlineExceededError) as e:
            raise NameRegistryError("deleting a lease failed", e)

        logger.info(f"Deregistered {self.entity_type} name '{name}' in {namespace}")

    def try_lock_name(self, namespace: str, name: str) -> None:
        """Lock a registered name; fails if it is already locked or missing."""
        if is_dry_run():
            return

        self._swap_holder(
            namespace,
            name,
            HolderState.UNLOCKED,
            HolderState.LOCKED,
            "failed to acquire lock on lease",
        )

    def unlock_name(self, namespace: str, name: str) -> None:
        """Unlock a locked name; fails if it is not locked."""
        if is_dry_run():
            return

        self._swap_holder(
            namespace,
            name,
            HolderState.LOCKED,
            HolderState.UNLOCKED,
            "failed to release lock on lease",
        )

    def check_name_ownership(
        self, namespace: str, name: str, owner_namespace: str, owner_name: str
    ) -> bool:
        """Check whether a registered name is held by the given resource.

        Returns:
            True if the Lease names the resource as its owner

        Raises:
            NameRegistryError: If the Lease could not be read
        """
        try:
            lease = self.client.get(LEASE_RESOURCE, namespace, self.lease_name(name))
        except (KubectlException, DeadlineExceededError) as e:
            raise NameRegistryError("failed to get lease", e)

        annotations = lease.get("metadata", {}).get("annotations") or {}
        return (
            annotations.get(OWNER_NAMESPACE_KEY) == owner_namespace
            and annotations.get(OWNER_NAME_KEY) == owner_name
        )

    def list_names(self, namespace: str) -> List[NameRecord]:
        """List the names registered for this entity type in a namespace."""
        try:
            leases = self.client.list(
                LEASE_RESOURCE,
                namespace,
                label_selector=f"{ENTITY_TYPE_KEY}={self.entity_type}",
            )
        except (KubectlException, DeadlineExceededError) as e:
            raise NameRegistryError("failed to list leases", e)

        return [record_from_lease(lease) for lease in leases]

    def _swap_holder(
        self,
        namespace: str,
        name: str,
        expected: HolderState,
        replacement: HolderState,
        failure_message: str,
    ) -> None:
        operations = [
            {"op": "test", "path": HOLDER_IDENTITY_PATH, "value": expected.value},
            {"op": "replace", "path": HOLDER_IDENTITY_PATH, "value": replacement.value},
        ]
        lease_name = self.lease_name(name)
        delay = self.retry_initial_delay

        for attempt in range(1, self.retry_attempts + 1):
            try:
                self.client.patch_json(LEASE_RESOURCE, namespace, lease_name, operations)
                logger.debug(
                    f"{self.entity_type} name '{name}' in {namespace} is now {replacement.name.lower()}"
                )
                return
            except (NotFoundError, ConflictError) as e:
                if attempt == self.retry_attempts:
                    raise NameRegistryError(failure_message, e)
                logger.debug(
                    f"Transient {e.reason} on lease {namespace}/{lease_name} "
                    f"(attempt {attempt}/{self.retry_attempts}), retrying in {delay:.2f}s"
                )
                self._backoff(delay)
                delay = min(delay * 2, self.retry_max_delay)
            except (KubectlException, DeadlineExceededError) as e:
                raise NameRegistryError(failure_message, e)

    def _backoff(self, delay: float) -> None:
        remaining = current_context().remaining()
        if remaining is not None:
            delay = min(delay, max(remaining, 0.0))
        if delay > 0:
            self._sleep(delay)


def record_from_lease(lease: Dict[str, Any]) -> NameRecord:
    metadata = lease.get("metadata", {})
    annotations = metadata.get("annotations") or {}
    holder = lease.get("spec", {}).get("holderIdentity")
    return NameRecord(
        lease_name=metadata.get("name", ""),
        entity_type=annotations.get(ENTITY_TYPE_KEY, ""),
        namespace=annotations.get(NAMESPACE_KEY, metadata.get("namespace", "")),
        name=annotations.get(NAME_KEY, ""),
        owner_namespace=annotations.get(OWNER_NAMESPACE_KEY, ""),
        owner_name=annotations.get(OWNER_NAME_KEY, ""),
        holder_state=HolderState.LOCKED if holder == HolderState.LOCKED.value else HolderState.UNLOCKED,
    )
