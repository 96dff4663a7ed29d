"""Lookup (relationship) field updates via @odata.bind."""
from __future__ import annotations
import logging

from .client import DynamicsClient
from .exceptions import CrmWriteError, DynamicsAPIError

logger = logging.getLogger(__name__)


def bind_payload(lookup_field: str, target_entity_set: str, target_id: str) -> dict[str, str]:
    """Build the PATCH body that points ``lookup_field`` at another record."""
    return {f"{lookup_field}@odata.bind": f"/{target_entity_set}({target_id})"}


class LookupService:
    """Service for linking Dynamics records through lookup fields."""

    def __init__(self, client: DynamicsClient):
        self.client = client

    def link_lookup(
        self,
        entity_set: str,
        entity_id: str,
        lookup_field: str,
        target_entity_set: str,
        target_id: str,
    ) -> None:
        """Set ``lookup_field`` on ``entity_set(entity_id)`` to ``target_entity_set(target_id)``.

        The target record is not checked beforehand; a missing target surfaces
        as an upstream error.

        Raises:
            CrmWriteError: On any non-success response
        """
        try:
            self.client.patch(
                f"/{entity_set}({entity_id})",
                json=bind_payload(lookup_field, target_entity_set, target_id),
            )
        except DynamicsAPIError as exc:
            # Token failures are reported as link failures too
            logger.error("Error updating %s for %s: [%s] %s", lookup_field, entity_set, exc.status_code, exc.message)
            raise CrmWriteError(f"Failed to update {lookup_field}: {exc.message}", exc.status_code) from exc

        logger.info("Updated %s for %s with ID: %s", lookup_field, entity_set, entity_id)
