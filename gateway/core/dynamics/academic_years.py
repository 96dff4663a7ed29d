"""Academic year reads through fetchXml."""
from __future__ import annotations
import logging
from typing import Any, Iterable

from .client import DynamicsClient
from .exceptions import CrmQueryError, DynamicsAPIError

logger = logging.getLogger(__name__)

ACADEMIC_YEAR_ENTITY_SET = "new_academicyears"

# Active (statecode 0) academic years ordered by name
ACTIVE_ACADEMIC_YEARS_FETCH_XML = (
    '<fetch version="1.0" output-format="xml-platform" mapping="logical" distinct="false">'
    '<entity name="new_academicyear">'
    '<attribute name="new_academicyearid" />'
    '<attribute name="new_name" />'
    '<attribute name="statecode" />'
    '<order attribute="new_name" descending="false" />'
    '<filter type="and">'
    '<condition attribute="statecode" operator="eq" value="0" />'
    "</filter>"
    "</entity>"
    "</fetch>"
)


def to_academic_years(rows: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Map Web API rows to ``{id, name}``, keeping active rows in name order.

    The query already filters and orders server-side; this keeps the
    contract when a row carries a non-zero ``statecode`` anyway.
    """
    active = [row for row in rows if row.get("statecode", 0) in (0, None)]
    active.sort(key=lambda row: (row.get("new_name") or "").casefold())
    return [{"id": row.get("new_academicyearid"), "name": row.get("new_name")} for row in active]


class AcademicYearService:
    """Read-only access to academic year records."""

    def __init__(self, client: DynamicsClient):
        self.client = client

    def list_active(self) -> list[dict[str, Any]]:
        """Return active academic years as ``[{"id": ..., "name": ...}]`` sorted by name.

        Raises:
            CrmQueryError: If the token exchange or the query fails
        """
        try:
            resp = self.client.get(
                f"/{ACADEMIC_YEAR_ENTITY_SET}",
                params={"fetchXml": ACTIVE_ACADEMIC_YEARS_FETCH_XML},
            )
            rows = resp.json().get("value", [])
        except DynamicsAPIError as exc:
            logger.error("Error fetching academic years: [%s] %s", exc.status_code, exc.message)
            raise CrmQueryError(f"Failed to fetch academic years: {exc.message}") from exc
        except (ValueError, AttributeError) as exc:
            logger.error("Malformed academic years response: %s", exc)
            raise CrmQueryError("Malformed academic years response") from exc

        return to_academic_years(rows)
