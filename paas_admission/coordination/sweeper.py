"""One-shot cleanup of coordination records left behind by interrupted renames.

A rename claims the new name before releasing the old one. If the release
fails the old record stays behind, still pointing at a resource that no
longer uses that name. The sweep finds such records and deregisters them.
"""
import logging
from typing import Dict, NamedTuple, Type

from paas_admission.coordination.context import admission_context
from paas_admission.coordination.name_registry import (
    NameRegistry,
    ObjectStore,
    is_not_found,
)
from paas_admission.models.resources import UniqueResource
from paas_admission.models.schemas import NameRecord, SweepResponse
from paas_admission.services.kubectl import NotFoundError

logger = logging.getLogger(__name__)


class SweepTarget(NamedTuple):
    """How to load the owner of a record of one entity type."""

    resource: str
    resource_class: Type[UniqueResource]


class OrphanedNameSweeper:
    """Deregisters names whose owner is gone or now holds a different name."""

    def __init__(self, client: ObjectStore, targets: Dict[str, SweepTarget]):
        self.client = client
        self.targets = targets

    def sweep(
        self, entity_type: str, namespace: str, dry_run: bool = False
    ) -> SweepResponse:
        """Run one sweep over the records of an entity type in a namespace.

        Args:
            entity_type: Registry entity type (e.g. 'app')
            namespace: Namespace holding the records
            dry_run: Report what would be deleted without deleting

        Returns:
            Deleted and kept records

        Raises:
            KeyError: If the entity type is unknown
            NameRegistryError: If records cannot be listed or deleted
        """
        target = self.targets[entity_type]
        registry = NameRegistry(self.client, entity_type)
        response = SweepResponse(entity_type=entity_type, namespace=namespace, dry_run=dry_run)

        with admission_context(dry_run=dry_run):
            for record in registry.list_names(namespace):
                if self._is_orphaned(registry, target, record):
                    registry.deregister_name(namespace, record.name)
                    response.deleted.append(record)
                else:
                    response.kept.append(record)

        logger.info(
            f"Swept {entity_type} names in {namespace}: "
            f"{len(response.deleted)} orphaned, {len(response.kept)} kept (dry_run={dry_run})"
        )
        return response

    def _is_orphaned(
        self, registry: NameRegistry, target: SweepTarget, record: NameRecord
    ) -> bool:
        # Locked records are judged like the rest: an interrupted rename leaves
        # its old name locked, while an in-flight one still matches the owner.
        try:
            data = self.client.get(target.resource, record.owner_namespace, record.owner_name)
        except NotFoundError:
            logger.info(
                f"Owner {record.owner_namespace}/{record.owner_name} of "
                f"{record.entity_type} name '{record.name}' no longer exists"
            )
            return True

        owner = target.resource_class.model_validate(data)
        current_name = owner.unique_name()
        if current_name == record.name:
            return False

        try:
            holds_current = registry.check_name_ownership(
                record.namespace, current_name, record.owner_namespace, record.owner_name
            )
        except Exception as e:
            if is_not_found(e):
                return False
            raise

        if holds_current:
            logger.info(
                f"Owner {record.owner_namespace}/{record.owner_name} moved from "
                f"'{record.name}' to '{current_name}'"
            )
        return holds_current
