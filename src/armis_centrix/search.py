"""
AQL search.

``GET /api/{version}/search/`` runs an Armis Query Language expression and
returns matching alerts, activities or devices. Result fields vary with the
query, so every field is optional and unknown keys are ignored.

Usage:
    data = SearchService(client).search('in:alerts timeFrame:"1 Hours"', include_sample=True)
    for result in data.results:
        print(result.title, result.severity)
"""

from typing import ClassVar

from pydantic import Field

from armis_centrix.client import ArmisClient
from armis_centrix.errors import ValidationError
from armis_centrix.executor import unwrap
from armis_centrix.logging_config import get_logger, log_with_context
from armis_centrix.models import ArmisId, ArmisModel, StringList

logger = get_logger(__name__)


class SearchEndpoint(ArmisModel):
    """
    Source or destination of an activity.

    Armis sends ``id`` as a number or a string and ``ip`` as a single
    address or a list; both are normalized.
    """

    id: ArmisId | None = None
    ip: StringList | None = None
    name: str | None = None


class SearchResult(ArmisModel):
    activity_uuids: list[str] | None = Field(default=None, alias="activityUUIDs")
    affected_devices_count: int | None = None
    alert_id: int | None = None
    classification: str | None = None
    connection_ids: list[ArmisId] | None = None
    description: str | None = None
    destination_endpoints: list[SearchEndpoint] | None = None
    device_ids: list[int] | None = None
    last_alert_update_time: str | None = None
    mitre_attack_labels: list[str] | None = None
    policy_id: ArmisId | None = None
    policy_labels: list[str] | None = None
    policy_title: str | None = None
    severity: str | None = None
    source_endpoints: list[SearchEndpoint] | None = None
    status: str | None = None
    status_change_time: str | None = None
    time: str | None = None
    title: str | None = None
    type: str | None = None


class SearchData(ArmisModel):
    """
    ``data`` member of a search response.

    Attributes:
        count: Results in this response
        next: Offset of the next page, if any
        prev: Offset of the previous page, if any
        total: Total matches (only when requested)
        results: Matching records
    """

    count: int = 0
    next: int | None = None
    prev: int | None = None
    total: int | None = None
    results: list[SearchResult] = Field(default_factory=list)


def _flag(value: bool) -> str:
    return "true" if value else "false"


class SearchService:
    """AQL search through an ArmisClient."""

    RESOURCE: ClassVar[str] = "search"

    def __init__(self, client: ArmisClient) -> None:
        self.client = client

    def search(self, aql: str, include_sample: bool = False, include_total: bool = True) -> SearchData:
        """
        Run an AQL query.

        Args:
            aql: Armis Query Language expression
            include_sample: Ask Armis to include sample records
            include_total: Ask Armis to count all matches

        Raises:
            ValidationError: If aql is blank
            ResponseError: If Armis reported success=false
        """
        if not aql.strip():
            raise ValidationError("search AQL cannot be empty")

        envelope = self.client.request(
            "GET",
            self.RESOURCE,
            SearchData,
            params={
                "aql": aql,
                "includeSample": _flag(include_sample),
                "includeTotal": _flag(include_total),
            },
        )
        data: SearchData = unwrap(envelope, "search")
        log_with_context(logger, "debug", "Search completed", count=data.count, total=data.total)
        return data
