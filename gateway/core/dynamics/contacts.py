"""Dynamics entity creation (contacts and other contact-like records)."""
from __future__ import annotations
import logging
import re
from typing import Any, Mapping, Optional
from urllib.parse import unquote, urlparse

from .client import DynamicsClient
from .exceptions import AuthError, CrmWriteError, DynamicsAPIError, LocationHeaderError

logger = logging.getLogger(__name__)

# Fixed statuscode for every record created through the gateway
CREATED_STATUS_CODE = 100000001

# Request key -> Dynamics attribute. Keys not listed here are ignored.
CONTACT_FIELD_MAP: dict[str, str] = {
    "firstName": "firstname",
    "lastName": "lastname",
    "email": "emailaddress1",
    "telephone1": "telephone1",
    "gendercode": "gendercode",
    "familystatuscode": "familystatuscode",
    "new_academicqualification": "new_academicqualification",
    "jobtitle": "jobtitle",
    "new_jobplace": "new_jobplace",
    "new_type": "new_type",
    "new_nationalid": "new_nationalid",
    "new_chronicdiseases": "new_chronicdiseases",
    "birthdate": "birthdate",
    "new_assignedinanoherschool": "new_assignedinanoherschool",
    "new_previousassignedschool": "new_previousassignedschool",
    "new_transferreason": "new_transferreason",
    "new_ageatnexteducationalyear": "new_ageatnexteducationalyear",
    "new_graduationschool": "new_graduationschool",
    "new_graduationuniversity": "new_graduationuniversity",
    "new_otheracademicqualification": "new_otheracademicqualification",
    "new_previouswork": "new_previouswork",
    "new_moderntechnologies": "new_moderntechnologies",
    "new_expectedsalary": "new_expectedsalary",
    "new_workingfield": "new_workingfield",
    "new_workingreason": "new_workingreason",
}

_ENTITY_REF = re.compile(r"\(([^()]+)\)$")


def build_contact_payload(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Map caller fields onto Dynamics contact attributes.

    Every mapped attribute is present in the result; unset ones are None so the
    Web API receives explicit nulls. ``statuscode`` is always forced.
    """
    payload = {attribute: fields.get(key) for key, attribute in CONTACT_FIELD_MAP.items()}
    payload["statuscode"] = CREATED_STATUS_CODE
    return payload


def parse_entity_id(location: Optional[str]) -> str:
    """Extract the record id from an OData-EntityId / Location header.

    >>> parse_entity_id("https://org.crm.dynamics.com/api/data/v9.0/contacts(11111111-2222-3333-4444-555555555555)")
    '11111111-2222-3333-4444-555555555555'

    Raises:
        LocationHeaderError: If the header is missing or has no ``(<id>)`` segment
    """
    if not location or not location.strip():
        raise LocationHeaderError("Location header missing from creation response")

    path = unquote(urlparse(location.strip()).path).rstrip("/")
    last_segment = path.rsplit("/", 1)[-1]
    match = _ENTITY_REF.search(last_segment)
    if not match or not match.group(1).strip():
        raise LocationHeaderError(f"Could not read record id from Location header: {location!r}")
    return match.group(1).strip()


class EntityService:
    """Service for creating and removing Dynamics records."""

    def __init__(self, client: DynamicsClient):
        """Initialize entity service.

        Args:
            client: Dynamics client with a token provider attached
        """
        self.client = client

    def create_entity(self, fields: Mapping[str, Any], entity_set: str) -> dict[str, str]:
        """Create a contact-like record and return its server-assigned id.

        Args:
            fields: Caller-supplied values keyed by request field name
            entity_set: Entity set name, e.g. "contacts"

        Returns:
            ``{"guid": <record id>}``

        Raises:
            AuthError: If no token could be obtained
            CrmWriteError: If the Web API rejects the record
            LocationHeaderError: If the record id cannot be read from the response
        """
        payload = build_contact_payload(fields)
        logger.info("Creating %s with payload: %s", entity_set, payload)

        try:
            resp = self.client.post(f"/{entity_set}", json=payload)
        except AuthError:
            raise
        except DynamicsAPIError as exc:
            logger.error("Error creating %s: [%s] %s", entity_set, exc.status_code, exc.message)
            raise CrmWriteError(f"Failed to create {entity_set}: {exc.message}", exc.status_code) from exc

        location = resp.headers.get("Location") or resp.headers.get("OData-EntityId")
        guid = parse_entity_id(location)
        logger.info("%s created with GUID: %s", entity_set, guid)
        return {"guid": guid}

    def delete_entity(self, entity_set: str, entity_id: str) -> None:
        """Delete a record by id.

        Raises:
            CrmWriteError: If the Web API rejects the delete
        """
        try:
            self.client.delete(f"/{entity_set}({entity_id})")
        except DynamicsAPIError as exc:
            logger.error("Error deleting %s(%s): [%s] %s", entity_set, entity_id, exc.status_code, exc.message)
            raise CrmWriteError(f"Failed to delete {entity_set}: {exc.message}", exc.status_code) from exc
        logger.info("Deleted %s with GUID: %s", entity_set, entity_id)
