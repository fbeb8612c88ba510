"""Service layer for cluster access."""
from paas_admission.services.kubectl import (
    AlreadyExistsError,
    ConflictError,
    InvalidError,
    KubectlClient,
    KubectlException,
    KubectlTimeoutError,
    NotFoundError,
)
from paas_admission.services.naming import hash_name

__all__ = [
    "KubectlClient",
    "KubectlException",
    "AlreadyExistsError",
    "NotFoundError",
    "ConflictError",
    "InvalidError",
    "KubectlTimeoutError",
    "hash_name",
]
