"""
Account Service Layer: teacher, parent and student creation workflows

Used by both the HTTP API and the operator CLI so that validation, linking
and compensation behave the same on every interface.

Architecture:
    HTTP API (/api/*) ──┐
                        ├──> accounts_service.py ──> gateway.core.dynamics ──> Dynamics 365
    CLI (scripts/)    ──┘

Student creation is a small saga: create the contact, then bind the academic
year and any known parents. If a bind fails, the contact is deleted again so
no half-linked student is left behind.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from gateway.config import GatewayConfig
from gateway.core.dynamics import (
    ACADEMIC_YEAR_ENTITY_SET,
    AcademicYearService,
    CrmWriteError,
    DynamicsClient,
    EntityService,
    LookupService,
    TokenProvider,
)
from gateway.core.parent_links import DEFAULT_SCOPE, FATHER, MOTHER, ParentLinkStore
from gateway.core.validators import validate_parent, validate_student, validate_teacher

logger = logging.getLogger(__name__)

CONTACT_ENTITY_SET = "contacts"

ACADEMIC_YEAR_LOOKUP_FIELD = "new_AcademicYearlookup"
FATHER_LOOKUP_FIELD = "new_Father"
MOTHER_LOOKUP_FIELD = "new_Mother"

# Optional request keys that name parents explicitly
EXPLICIT_PARENT_KEYS = {FATHER: "fatherId", MOTHER: "motherId"}

PARENT_LOOKUP_FIELDS = ((FATHER, FATHER_LOOKUP_FIELD), (MOTHER, MOTHER_LOOKUP_FIELD))


# ─────────────────────────────────────────────────────────────────────────────
# Account Workflows
# ─────────────────────────────────────────────────────────────────────────────

class AccountService:
    """Orchestrates record creation, lookup binding and parent memory."""

    def __init__(
        self,
        entities: EntityService,
        lookups: LookupService,
        parent_links: ParentLinkStore,
    ):
        self.entities = entities
        self.lookups = lookups
        self.parent_links = parent_links

    def create_teacher(self, payload: Mapping[str, Any]) -> dict[str, str]:
        """Create a teacher contact.

        Raises:
            ValidationError: If firstName, lastName or email is missing
            DynamicsError: On any upstream failure
        """
        validate_teacher(payload)
        return self.entities.create_entity(payload, CONTACT_ENTITY_SET)

    def create_parent(self, payload: Mapping[str, Any], scope: str = DEFAULT_SCOPE) -> dict[str, str]:
        """Create a parent contact and remember it for the next student in ``scope``.

        gendercode "1" is stored as father, "2" as mother; other codes create the
        contact without touching the stored parents.
        """
        validate_parent(payload)
        result = self.entities.create_entity(payload, CONTACT_ENTITY_SET)

        role = self.parent_links.remember(payload.get("gendercode"), result["guid"], scope)
        if role:
            logger.info("Recorded %s GUID %s for scope=%s", role, result["guid"], scope)
        else:
            logger.info("Parent gendercode=%r not linkable; stored parents unchanged", payload.get("gendercode"))
        return result

    def create_student(self, payload: Mapping[str, Any], scope: str = DEFAULT_SCOPE) -> dict[str, str]:
        """Create a student contact and bind academic year and parents.

        Parent ids come from ``fatherId``/``motherId`` in the payload when given,
        otherwise from the parents remembered for ``scope``.

        Raises:
            ValidationError: If any required student field is missing
            DynamicsError: On any upstream failure; if a bind fails, the
                created contact has already been deleted again
        """
        validate_student(payload)
        result = self.entities.create_entity(payload, CONTACT_ENTITY_SET)
        student_guid = result["guid"]

        try:
            self.lookups.link_lookup(
                CONTACT_ENTITY_SET,
                student_guid,
                ACADEMIC_YEAR_LOOKUP_FIELD,
                ACADEMIC_YEAR_ENTITY_SET,
                payload["academicYearId"],
            )
            for role, lookup_field in PARENT_LOOKUP_FIELDS:
                parent_guid = self.resolve_parent(payload, role, scope)
                if parent_guid:
                    self.lookups.link_lookup(
                        CONTACT_ENTITY_SET,
                        student_guid,
                        lookup_field,
                        CONTACT_ENTITY_SET,
                        parent_guid,
                    )
        except CrmWriteError:
            self._compensate_student(student_guid)
            raise

        return result

    def resolve_parent(self, payload: Mapping[str, Any], role: str, scope: str = DEFAULT_SCOPE) -> Optional[str]:
        explicit = payload.get(EXPLICIT_PARENT_KEYS[role])
        if explicit:
            return str(explicit)
        return self.parent_links.get_parent(role, scope)

    def _compensate_student(self, student_guid: str) -> None:
        """Delete a student whose links could not be completed."""
        logger.warning("Rolling back student %s after failed lookup binding", student_guid)
        try:
            self.entities.delete_entity(CONTACT_ENTITY_SET, student_guid)
        except CrmWriteError as exc:
            # The original bind error is what the caller sees
            logger.error("Compensation failed; student %s left in CRM: %s", student_guid, exc)


# ─────────────────────────────────────────────────────────────────────────────
# Wiring
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class GatewayServices:
    """Services shared by the HTTP API and the CLI for one process."""
    accounts: AccountService
    academic_years: AcademicYearService
    token_provider: TokenProvider


def build_services(cfg: GatewayConfig, parent_links: Optional[ParentLinkStore] = None) -> GatewayServices:
    """Wire one token provider, Dynamics client and service set from config."""
    token_provider = TokenProvider.from_config(cfg)
    client = DynamicsClient.from_config(cfg, token_provider)
    store = parent_links or ParentLinkStore(ttl_seconds=cfg.parent_link_ttl_seconds)
    accounts = AccountService(EntityService(client), LookupService(client), store)
    return GatewayServices(
        accounts=accounts,
        academic_years=AcademicYearService(client),
        token_provider=token_provider,
    )
