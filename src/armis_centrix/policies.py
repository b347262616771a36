"""
Armis policy operations.

Policies pair a rule tree (``rules``) with actions Armis takes when the rule
matches. This module provides the policy payload models and PolicyService,
which creates, reads, lists, updates and deletes policies through an
ArmisClient.

Validation happens locally before any network call: a policy needs a name,
a non-empty rule, a description of at most 500 characters, and one of the
rule types Armis supports.

Usage:
    from armis_centrix.policies import PolicyService, PolicySettings
    from armis_centrix.rules import Group, build_rule

    policy = PolicySettings(
        name="BMS traffic from phones",
        rule_type="ACTIVITY",
        rules=build_rule(and_=["protocol:BMS", Group.any_of("content:(iPhone)", "content:(Android)")]),
    )
    policy_id = PolicyService(client).create(policy)
"""

from typing import Any, ClassVar

from pydantic import Field

from armis_centrix.client import ArmisClient
from armis_centrix.errors import ValidationError
from armis_centrix.executor import unwrap
from armis_centrix.logging_config import get_logger, log_with_context
from armis_centrix.models import ArmisId, ArmisModel
from armis_centrix.rules import Group

logger = get_logger(__name__)

DESCRIPTION_LIMIT = 500

ALLOWED_RULE_TYPES = frozenset({"ACTIVITY", "IP_CONNECTION", "DEVICE", "VULNERABILITY"})

DEFAULT_PAGE_SIZE = 100


class Consolidation(ArmisModel):
    """How repeated matches are folded into one alert."""

    amount: int | None = None
    unit: str | None = None


class ActionParams(ArmisModel):
    """Parameters of a policy action."""

    consolidation: Consolidation = Field(default_factory=Consolidation)
    severity: str | None = None
    title: str | None = None
    type: str | None = None
    endpoint: str | None = None
    tags: list[str] | None = None


class Action(ArmisModel):
    """Something Armis does when the policy matches (alert, tag, ...)."""

    params: ActionParams = Field(default_factory=ActionParams)
    type: str | None = None


class MitreAttackLabel(ArmisModel):
    """MITRE ATT&CK classification as Armis returns it."""

    matrix: str = ""
    sub_technique: str = ""
    tactic: str = ""
    technique: str = ""


class PolicySettings(ArmisModel):
    """
    Policy body sent on create and update.

    Attributes:
        name: Policy name (required)
        description: Free text, at most 500 characters
        is_enabled: Whether the policy is active; left out of the body when unset
        rule_type: ACTIVITY, IP_CONNECTION, DEVICE or VULNERABILITY
        labels: Free-form labels
        mitre_attack_labels: MITRE labels in Armis' string form
        actions: Actions taken on match
        rules: Rule tree the policy matches on
    """

    name: str = ""
    description: str | None = None
    is_enabled: bool | None = None
    rule_type: str = ""
    labels: list[str] | None = None
    mitre_attack_labels: list[str] | None = None
    actions: list[Action] | None = None
    rules: Group = Field(default_factory=Group)

    def validate_settings(self) -> None:
        """
        Check the policy before sending it.

        All failing checks are reported together.

        Raises:
            ValidationError: If any check fails
        """
        errors: list[str] = []
        if not self.name:
            errors.append("policy name cannot be empty")
        if self.rules.is_empty:
            errors.append("policy rules cannot be empty")
        if self.description is not None and len(self.description) > DESCRIPTION_LIMIT:
            errors.append(f"policy description must be less than {DESCRIPTION_LIMIT} characters")
        if self.rule_type not in ALLOWED_RULE_TYPES:
            errors.append("policy rule type must be ACTIVITY, IP_CONNECTION, DEVICE, or VULNERABILITY")
        if errors:
            raise ValidationError.from_errors(errors)


class PolicyDetails(ArmisModel):
    """A policy as returned by get and update."""

    name: str = ""
    description: str | None = None
    is_enabled: bool = False
    rule_type: str = ""
    labels: list[str] | None = None
    mitre_attack_labels: list[MitreAttackLabel] | None = None
    actions: list[Action] | None = None
    rules: Group = Field(default_factory=Group)


class PolicySummary(PolicyDetails):
    """One entry of the policy list."""

    id: ArmisId = ""
    action: Action | None = None
    risk_factor_data: Any = None


class PolicyId(ArmisModel):
    """Identifier returned by create."""

    id: int


class PolicyPage(ArmisModel):
    """One page of the policy list."""

    count: int = 0
    next: int | None = None
    prev: int | None = None
    total: int = 0
    policies: list[PolicySummary] = Field(default_factory=list)


class PolicyService:
    """
    Policy CRUD through an ArmisClient.

    Attributes:
        client: Client used for every call
    """

    RESOURCE: ClassVar[str] = "policies"

    def __init__(self, client: ArmisClient) -> None:
        self.client = client

    def create(self, policy: PolicySettings) -> PolicyId:
        """
        Create a policy.

        Raises:
            ValidationError: If the policy fails local validation
            ResponseError: If Armis reported success=false
            ArmisError: Any other classified failure
        """
        policy.validate_settings()
        envelope = self.client.request("POST", self.RESOURCE, PolicyId, body=policy)
        created: PolicyId = unwrap(envelope, f"create policy {policy.name!r}")
        log_with_context(logger, "info", "Created policy", policy_id=created.id, policy_name=policy.name)
        return created

    def get(self, policy_id: str) -> PolicyDetails:
        """
        Fetch one policy.

        Raises:
            ValidationError: If policy_id is empty
        """
        if not policy_id:
            raise ValidationError("policy ID cannot be empty")
        envelope = self.client.request("GET", self.RESOURCE, PolicyDetails, resource_id=policy_id)
        return unwrap(envelope, f"get policy {policy_id!r}")

    def list_all(self, page_size: int = DEFAULT_PAGE_SIZE) -> list[PolicySummary]:
        """
        Fetch every policy, following ``next`` offsets until exhausted.

        Args:
            page_size: Policies requested per page
        """
        policies: list[PolicySummary] = []
        offset = 0

        while True:
            envelope = self.client.request(
                "GET",
                self.RESOURCE,
                PolicyPage,
                params={"from": offset, "length": page_size},
            )
            page: PolicyPage = unwrap(envelope, f"list policies (from={offset})")
            policies.extend(page.policies)

            # Stop on a missing or non-advancing offset
            if page.next is None or page.next <= offset:
                break
            offset = page.next

        log_with_context(logger, "debug", "Listed policies", count=len(policies))
        return policies

    def update(self, policy: PolicySettings, policy_id: str) -> PolicyDetails:
        """
        Update a policy in place (PATCH).

        Raises:
            ValidationError: If the name or policy_id is blank, or the rule
                tree is empty
        """
        errors: list[str] = []
        if not policy.name.strip():
            errors.append("policy name cannot be empty")
        if policy.rules.is_empty:
            errors.append("policy rules cannot be empty")
        if not policy_id.strip():
            errors.append("policy ID cannot be empty")
        if errors:
            raise ValidationError.from_errors(errors)

        envelope = self.client.request(
            "PATCH",
            self.RESOURCE,
            PolicyDetails,
            body=policy,
            resource_id=policy_id,
        )
        updated: PolicyDetails = unwrap(envelope, f"update policy {policy.name!r}")
        log_with_context(logger, "info", "Updated policy", policy_id=policy_id)
        return updated

    def delete(self, policy_id: str) -> bool:
        """
        Delete a policy.

        Returns:
            The ``success`` flag Armis reported

        Raises:
            ValidationError: If policy_id is empty
        """
        if not policy_id:
            raise ValidationError("policy ID cannot be empty")
        envelope = self.client.request("DELETE", self.RESOURCE, resource_id=policy_id)
        log_with_context(
            logger,
            "info",
            "Deleted policy",
            policy_id=policy_id,
            success=envelope.success,
        )
        return envelope.success
