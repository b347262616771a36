"""
Armis boundary lookups.

A boundary groups sites and networks under a rule (``ruleAql``) with the
same and/or shape as policy rules. Boundaries are read-only here.
"""

from typing import ClassVar

from pydantic import Field

from armis_centrix.client import ArmisClient
from armis_centrix.errors import ValidationError
from armis_centrix.executor import unwrap
from armis_centrix.logging_config import get_logger, log_with_context
from armis_centrix.models import ArmisId, ArmisModel
from armis_centrix.rules import Group

logger = get_logger(__name__)


class Boundary(ArmisModel):
    """
    A boundary as returned by Armis.

    Attributes:
        id: Boundary id (numeric on the wire, held as str)
        name: Display name
        affected_sites: Sites the boundary applies to
        rule_aql: Rule tree selecting the boundary's assets
    """

    id: ArmisId = ""
    name: str = ""
    affected_sites: str | None = None
    rule_aql: Group = Field(default_factory=Group)


class BoundaryPage(ArmisModel):
    count: int = 0
    next: int | None = None
    prev: int | None = None
    boundaries: list[Boundary] = Field(default_factory=list)


class BoundaryService:
    """Boundary reads through an ArmisClient."""

    RESOURCE: ClassVar[str] = "boundaries"

    def __init__(self, client: ArmisClient) -> None:
        self.client = client

    def get(self, boundary_id: str) -> Boundary:
        """
        Fetch one boundary.

        Raises:
            ValidationError: If boundary_id is empty
            ResponseError: If Armis reported success=false
        """
        if not boundary_id:
            raise ValidationError("boundary ID cannot be empty")
        envelope = self.client.request("GET", self.RESOURCE, Boundary, resource_id=boundary_id)
        return unwrap(envelope, f"get boundary {boundary_id!r}")

    def list(self) -> list[Boundary]:
        """Fetch every boundary visible to the credential."""
        envelope = self.client.request("GET", self.RESOURCE, BoundaryPage)
        page: BoundaryPage = unwrap(envelope, "list boundaries")
        log_with_context(logger, "debug", "Listed boundaries", count=len(page.boundaries))
        return page.boundaries
