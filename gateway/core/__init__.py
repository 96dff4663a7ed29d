"""Core Business Logic Module

This module provides the account workflows of the gateway, independent of
the HTTP framework.

Module Structure:
    - dynamics/            : Dynamics 365 Web API client (token, create, bind, query)
    - accounts_service.py  : Teacher/parent/student workflows and service wiring
    - parent_links.py      : Scoped, expiring memory of recently created parents
    - validators.py        : Required-field checks

Usage Pattern:
    These modules are NOT auto-imported so the CLI can use the Dynamics
    client without importing Flask.

        from gateway.core.accounts_service import build_services
        from gateway.core.validators import ValidationError
"""
