"""kubectl CLI wrapper used as the cluster object store."""
import json
import logging
import re
import subprocess
from typing import Any, Dict, List, Optional

import yaml

from paas_admission.config import settings
from paas_admission.coordination.context import remaining_timeout

logger = logging.getLogger(__name__)

_SERVER_REASON = re.compile(r"Error from server \((\w+)\)")


class KubectlException(Exception):
    """Exception raised when kubectl command fails."""

    reason = "Unknown"

    def __init__(self, message: str, command: str, stderr: str):
        self.message = message
        self.command = command
        self.stderr = stderr
        super().__init__(self.message)


class AlreadyExistsError(KubectlException):
    """The object to create already exists."""

    reason = "AlreadyExists"


class NotFoundError(KubectlException):
    """The addressed object does not exist."""

    reason = "NotFound"


class ConflictError(KubectlException):
    """The object was modified concurrently."""

    reason = "Conflict"


class InvalidError(KubectlException):
    """The server rejected the request, e.g. a failed JSON patch test operation."""

    reason = "Invalid"


class KubectlTimeoutError(KubectlException):
    """kubectl did not finish within the allowed time."""

    reason = "Timeout"


_ERRORS_BY_REASON = {
    "AlreadyExists": AlreadyExistsError,
    "NotFound": NotFoundError,
    "Conflict": ConflictError,
    "Invalid": InvalidError,
}


def _classify(stderr: str) -> type:
    match = _SERVER_REASON.search(stderr)
    if match and match.group(1) in _ERRORS_BY_REASON:
        return _ERRORS_BY_REASON[match.group(1)]

    lowered = stderr.lower()
    if "already exists" in lowered:
        return AlreadyExistsError
    if "not found" in lowered:
        return NotFoundError
    if "the object has been modified" in lowered:
        return ConflictError
    if "request is invalid" in lowered or "rejected our request" in lowered:
        return InvalidError
    return KubectlException


class KubectlClient:
    """Object store operations (via kubectl).

    Only single-object operations are exposed. Atomicity comes from the API
    server: ``create`` fails if the object exists and a JSON patch containing a
    ``test`` operation is applied atomically or rejected.
    """

    def __init__(self, kubectl_bin: Optional[str] = None, timeout: Optional[float] = None):
        self.kubectl_bin = kubectl_bin or settings.kubectl_binary
        self.timeout = timeout if timeout is not None else settings.kubectl_timeout

    def _run_command(
        self,
        args: List[str],
        input_data: Optional[str] = None,
    ) -> subprocess.CompletedProcess:
        """Execute a kubectl command.

        Args:
            args: Command arguments (without 'kubectl' prefix)
            input_data: Optional stdin input

        Returns:
            CompletedProcess object

        Raises:
            KubectlException: If command fails or times out (a subclass
                when the server reported a known reason)
            DeadlineExceededError: If the admission deadline already passed
        """
        cmd = [self.kubectl_bin] + args
        timeout = remaining_timeout(self.timeout)
        logger.debug(f"Executing: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                input=input_data,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )

        except subprocess.TimeoutExpired as e:
            raise KubectlTimeoutError(
                message=f"kubectl command timed out after {timeout:.2f}s",
                command=" ".join(cmd),
                stderr=str(e),
            )
        except FileNotFoundError:
            raise KubectlException(
                message=f"kubectl binary not found: {self.kubectl_bin}",
                command=" ".join(cmd),
                stderr="",
            )

        if result.returncode != 0:
            error_class = _classify(result.stderr or "")
            raise error_class(
                message=f"kubectl command failed with code {result.returncode}",
                command=" ".join(cmd),
                stderr=(result.stderr or "").strip(),
            )

        return result

    def create(self, manifest: Dict[str, Any]) -> Dict[str, Any]:
        """Create an object; fails with AlreadyExistsError if it exists.

        Args:
            manifest: Full object manifest

        Returns:
            The created object as returned by the server
        """
        result = self._run_command(
            ["create", "--filename", "-", "--output", "json"],
            input_data=yaml.safe_dump(manifest),
        )
        return json.loads(result.stdout)

    def get(self, resource: str, namespace: str, name: str) -> Dict[str, Any]:
        """Get a single object.

        Args:
            resource: Resource type (e.g. 'leases.coordination.k8s.io')
            namespace: Object namespace
            name: Object name

        Returns:
            The object

        Raises:
            NotFoundError: If the object does not exist
        """
        result = self._run_command(
            ["get", resource, name, "--namespace", namespace, "--output", "json"]
        )
        return json.loads(result.stdout)

    def list(
        self, resource: str, namespace: str, label_selector: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """List objects in a namespace.

        Args:
            resource: Resource type
            namespace: Namespace name
            label_selector: Optional label selector

        Returns:
            List of objects
        """
        args = ["get", resource, "--namespace", namespace, "--output", "json"]
        if label_selector:
            args.extend(["--selector", label_selector])

        result = self._run_command(args)
        return json.loads(result.stdout).get("items", [])

    def delete(self, resource: str, namespace: str, name: str) -> None:
        """Delete an object.

        Raises:
            NotFoundError: If the object does not exist
        """
        self._run_command(
            ["delete", resource, name, "--namespace", namespace, "--wait=false"]
        )

    def patch_json(
        self,
        resource: str,
        namespace: str,
        name: str,
        operations: List[Dict[str, Any]],
    ) -> Dict[str, Any]:
        """Apply an RFC 6902 JSON patch atomically.

        Args:
            resource: Resource type
            namespace: Object namespace
            name: Object name
            operations: Patch operations, 'test' ops act as preconditions

        Returns:
            The patched object

        Raises:
            InvalidError: If a 'test' operation did not hold
            NotFoundError: If the object does not exist
        """
        result = self._run_command(
            [
                "patch",
                resource,
                name,
                "--namespace",
                namespace,
                "--type",
                "json",
                "--patch",
                json.dumps(operations),
                "--output",
                "json",
            ]
        )
        return json.loads(result.stdout)

    def get_version(self) -> str:
        """Get kubectl client version."""
        result = self._run_command(["version", "--client", "--output", "json"])
        data = json.loads(result.stdout)
        return data.get("clientVersion", {}).get("gitVersion", "unknown")
