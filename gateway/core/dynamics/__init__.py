"""Dynamics 365 Web API client library.

Architecture:
- client.py: token provider (client credentials) and authenticated HTTP client
- contacts.py: record creation and the Location header contract
- lookups.py: lookup field binding
- academic_years.py: fetchXml read of active academic years
- exceptions.py: typed exceptions for error handling

Usage:
    from gateway.core.dynamics import DynamicsClient, EntityService

    client = DynamicsClient.from_config(cfg)
    guid = EntityService(client).create_entity(fields, "contacts")["guid"]
"""
from .client import (
    DynamicsClient,
    TokenProvider,
    REQUEST_TIMEOUT,
    error_message,
)
from .exceptions import (
    DynamicsError,
    DynamicsAPIError,
    AuthError,
    CrmWriteError,
    LocationHeaderError,
    CrmQueryError,
)
from .contacts import (
    EntityService,
    CONTACT_FIELD_MAP,
    CREATED_STATUS_CODE,
    build_contact_payload,
    parse_entity_id,
)
from .lookups import LookupService, bind_payload
from .academic_years import (
    AcademicYearService,
    ACADEMIC_YEAR_ENTITY_SET,
    ACTIVE_ACADEMIC_YEARS_FETCH_XML,
    to_academic_years,
)

__all__ = [
    # Client
    "DynamicsClient",
    "TokenProvider",
    "REQUEST_TIMEOUT",
    "error_message",

    # Exceptions
    "DynamicsError",
    "DynamicsAPIError",
    "AuthError",
    "CrmWriteError",
    "LocationHeaderError",
    "CrmQueryError",

    # Services
    "EntityService",
    "LookupService",
    "AcademicYearService",

    # Helpers
    "CONTACT_FIELD_MAP",
    "CREATED_STATUS_CODE",
    "build_contact_payload",
    "parse_entity_id",
    "bind_payload",
    "ACADEMIC_YEAR_ENTITY_SET",
    "ACTIVE_ACADEMIC_YEARS_FETCH_XML",
    "to_academic_years",
]
