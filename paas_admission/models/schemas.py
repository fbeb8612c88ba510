"""Pydantic schemas for the admission protocol and operator API."""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

ADMISSION_API_VERSION = "admission.k8s.io/v1"
ADMISSION_KIND = "AdmissionReview"


class Operation(str, Enum):
    """Admission request operation."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    CONNECT = "CONNECT"


class HolderState(str, Enum):
    """Lock state of a coordination record, stored as the Lease holder identity."""

    UNLOCKED = "none"
    LOCKED = "locked"


# Admission protocol


class GroupVersionKind(BaseModel):
    """Kubernetes group/version/kind triple."""

    group: str = ""
    version: str = ""
    kind: str = ""


class AdmissionRequest(BaseModel):
    """Request part of an AdmissionReview."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    uid: str
    kind: Optional[GroupVersionKind] = None
    name: Optional[str] = None
    namespace: Optional[str] = None
    operation: Operation
    object: Optional[Dict[str, Any]] = None
    old_object: Optional[Dict[str, Any]] = Field(None, alias="oldObject")
    dry_run: Optional[bool] = Field(False, alias="dryRun")
    user_info: Optional[Dict[str, Any]] = Field(None, alias="userInfo")


class AdmissionStatus(BaseModel):
    """Result details of a denied request."""

    code: int = 403
    reason: Optional[str] = None
    message: Optional[str] = None


class AdmissionResponse(BaseModel):
    """Response part of an AdmissionReview."""

    uid: str
    allowed: bool
    status: Optional[AdmissionStatus] = None
    warnings: Optional[List[str]] = None


class AdmissionReview(BaseModel):
    """AdmissionReview envelope, used for both request and response."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    api_version: str = Field(ADMISSION_API_VERSION, alias="apiVersion")
    kind: str = ADMISSION_KIND
    request: Optional[AdmissionRequest] = None
    response: Optional[AdmissionResponse] = None


# Operator API


class NameRecord(BaseModel):
    """A registered name, as stored in its coordination Lease."""

    lease_name: str
    entity_type: str
    namespace: str
    name: str
    owner_namespace: str
    owner_name: str
    holder_state: HolderState = HolderState.UNLOCKED


class NameRecordListResponse(BaseModel):
    """List of registered names."""

    records: List[NameRecord]


class SweepResponse(BaseModel):
    """Outcome of an orphaned-name sweep."""

    entity_type: str
    namespace: str
    dry_run: bool
    deleted: List[NameRecord] = Field(default_factory=list)
    kept: List[NameRecord] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime
    kubectl_version: Optional[str] = None


class ErrorResponse(BaseModel):
    """Error response."""

    detail: str
    error_type: Optional[str] = None
