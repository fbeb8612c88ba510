"""Typed views of the PaaS custom resources seen by the admission webhooks.

Only the fields the webhooks look at are modelled; everything else is kept
as extra data and ignored.
"""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

API_GROUP = "korifi.cloudfoundry.org"
API_VERSION = f"{API_GROUP}/v1alpha1"

CFORG_RESOURCE = f"cforgs.{API_GROUP}"
CFAPP_RESOURCE = f"cfapps.{API_GROUP}"
CFDOMAIN_RESOURCE = f"cfdomains.{API_GROUP}"
CFSPACE_RESOURCE = f"cfspaces.{API_GROUP}"
CFROUTE_RESOURCE = f"cfroutes.{API_GROUP}"
CFSERVICEINSTANCE_RESOURCE = f"cfserviceinstances.{API_GROUP}"
CFSERVICEBINDING_RESOURCE = f"cfservicebindings.{API_GROUP}"


class K8sModel(BaseModel):
    """Base model mapping snake_case fields to camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class ObjectMeta(K8sModel):
    name: str = ""
    namespace: str = ""
    uid: Optional[str] = None
    labels: Dict[str, str] = Field(default_factory=dict)
    annotations: Dict[str, str] = Field(default_factory=dict)
    deletion_timestamp: Optional[datetime] = None


class LocalObjectReference(K8sModel):
    name: str = ""


class ObjectReference(K8sModel):
    name: str = ""
    namespace: str = ""
    kind: Optional[str] = None
    api_version: Optional[str] = None


class Condition(K8sModel):
    type: str
    status: str
    reason: Optional[str] = None
    message: Optional[str] = None


class Resource(K8sModel):
    """Common envelope of every custom resource."""

    api_version: str = API_VERSION
    kind: str = ""
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)

    def is_being_deleted(self) -> bool:
        return self.metadata.deletion_timestamp is not None


class UniqueResource(Resource):
    """Resource whose display name must be unique within a scope."""

    def unique_name(self) -> str:
        raise NotImplementedError

    def unique_validation_error_message(self) -> str:
        raise NotImplementedError


# Workloads


class CFOrgSpec(K8sModel):
    display_name: str = ""


class CFOrg(UniqueResource):
    kind: str = "CFOrg"
    spec: CFOrgSpec = Field(default_factory=CFOrgSpec)

    def unique_name(self) -> str:
        return self.spec.display_name.lower()

    def unique_validation_error_message(self) -> str:
        return f"Organization '{self.spec.display_name}' already exists."


class CFSpaceSpec(K8sModel):
    display_name: str = ""


class CFSpace(UniqueResource):
    kind: str = "CFSpace"
    spec: CFSpaceSpec = Field(default_factory=CFSpaceSpec)

    def unique_name(self) -> str:
        return self.spec.display_name.lower()

    def unique_validation_error_message(self) -> str:
        return (
            f"Space '{self.spec.display_name}' already exists. "
            "Name must be unique per organization."
        )


class Lifecycle(K8sModel):
    type: str = ""
    data: Optional[Dict[str, object]] = None


class CFAppSpec(K8sModel):
    display_name: str = ""
    desired_state: Optional[str] = None
    lifecycle: Lifecycle = Field(default_factory=Lifecycle)


class CFApp(UniqueResource):
    kind: str = "CFApp"
    spec: CFAppSpec = Field(default_factory=CFAppSpec)

    def unique_name(self) -> str:
        return self.spec.display_name.lower()

    def unique_validation_error_message(self) -> str:
        return f"App with the name '{self.spec.display_name}' already exists."


class CFPackageSpec(K8sModel):
    type: str = ""
    app_ref: LocalObjectReference = Field(default_factory=LocalObjectReference)


class CFPackage(Resource):
    kind: str = "CFPackage"
    spec: CFPackageSpec = Field(default_factory=CFPackageSpec)


class CFTaskSpec(K8sModel):
    command: str = ""
    app_ref: LocalObjectReference = Field(default_factory=LocalObjectReference)
    canceled: bool = False


class CFTaskStatus(K8sModel):
    sequence_id: int = 0
    conditions: List[Condition] = Field(default_factory=list)

    def condition_true(self, condition_type: str) -> bool:
        return any(c.type == condition_type and c.status == "True" for c in self.conditions)


class CFTask(Resource):
    kind: str = "CFTask"
    spec: CFTaskSpec = Field(default_factory=CFTaskSpec)
    status: CFTaskStatus = Field(default_factory=CFTaskStatus)


# Networking


class CFDomainSpec(K8sModel):
    name: str = ""


class CFDomain(Resource):
    kind: str = "CFDomain"
    spec: CFDomainSpec = Field(default_factory=CFDomainSpec)


class Destination(K8sModel):
    guid: str = ""
    app_ref: LocalObjectReference = Field(default_factory=LocalObjectReference)
    process_type: Optional[str] = None
    port: Optional[int] = None
    protocol: Optional[str] = None


class CFRouteSpec(K8sModel):
    host: str = ""
    path: str = ""
    protocol: str = "http"
    domain_ref: ObjectReference = Field(default_factory=ObjectReference)
    destinations: List[Destination] = Field(default_factory=list)


class CFRoute(UniqueResource):
    kind: str = "CFRoute"
    spec: CFRouteSpec = Field(default_factory=CFRouteSpec)

    def unique_name(self) -> str:
        return "::".join(
            [
                self.spec.host.lower(),
                self.spec.domain_ref.namespace,
                self.spec.domain_ref.name,
                self.spec.path,
            ]
        )

    def unique_validation_error_message(self, domain_name: Optional[str] = None) -> str:
        path_details = f" and path '{self.spec.path}'" if self.spec.path else ""
        return (
            f"Route already exists with host '{self.spec.host}'{path_details} "
            f"for domain '{domain_name or self.spec.domain_ref.name}'."
        )


# Services


class CFServiceInstanceSpec(K8sModel):
    display_name: str = ""
    type: str = ""
    secret_name: Optional[str] = None


class CFServiceInstance(UniqueResource):
    kind: str = "CFServiceInstance"
    spec: CFServiceInstanceSpec = Field(default_factory=CFServiceInstanceSpec)

    def unique_name(self) -> str:
        return self.spec.display_name.lower()

    def unique_validation_error_message(self) -> str:
        return f"The service instance name is taken: {self.spec.display_name}"


class CFServiceBindingSpec(K8sModel):
    display_name: Optional[str] = None
    app_ref: LocalObjectReference = Field(default_factory=LocalObjectReference)
    service: ObjectReference = Field(default_factory=ObjectReference)


class CFServiceBinding(UniqueResource):
    kind: str = "CFServiceBinding"
    spec: CFServiceBindingSpec = Field(default_factory=CFServiceBindingSpec)

    def unique_name(self) -> str:
        return "::".join(
            ["sb", self.spec.app_ref.name, self.spec.service.namespace, self.spec.service.name]
        )

    def unique_validation_error_message(self) -> str:
        return (
            f"Service binding already exists: App: {self.spec.app_ref.name} "
            f"Service Instance: {self.spec.service.name}"
        )
