"""
Rule trees for Armis policy and boundary conditions.

Armis expresses policy rules and boundary AQL as a JSON object with optional
``and`` and ``or`` lists. Each list element is either an AQL condition string
or another object of the same shape:

    {
        "and": [
            "protocol:BMS",
            {"or": ["content:(iPhone)", "content:(Android)"]}
        ]
    }

This module models that as a tagged union of two node types:

    Leaf   - one AQL condition fragment, stored and sent verbatim
    Group  - an object node with an ordered ``and`` list and ``or`` list

Condition strings are never parsed or validated; AQL correctness is the
server's concern. When both lists are populated on one Group they are sent
as two independent members of the same object. How Armis combines them is
server-defined and this module does not assume any rule for it.

Usage:
    from armis_centrix.rules import Group, Leaf, build_rule, decode_rule

    rule = build_rule(and_=["protocol:BMS", Group.any_of("content:(iPhone)", "content:(Android)")])
    payload = rule.encode()
    assert decode_rule(payload) == rule
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Union

from pydantic import GetCoreSchemaHandler
from pydantic_core import CoreSchema, core_schema

from armis_centrix.errors import DecodeError, ValidationError


class Operator(StrEnum):
    """Boolean operator of a rule list, named after its JSON key."""

    AND = "and"
    OR = "or"


@dataclass(frozen=True)
class Leaf:
    """
    A single AQL condition fragment.

    Attributes:
        expression: Condition text, e.g. ``protocol:BMS``
    """

    expression: str

    def encode(self) -> str:
        return self.expression


@dataclass(frozen=True)
class Group:
    """
    An object node holding an ``and`` list and an ``or`` list.

    Children may be passed as ``Leaf``/``Group`` instances or as plain
    strings, which are wrapped in ``Leaf``. Both lists keep caller order.

    Attributes:
        and_: Children under the ``and`` key
        or_: Children under the ``or`` key
    """

    and_: tuple["RuleNode", ...] = field(default=())
    or_: tuple["RuleNode", ...] = field(default=())

    def __post_init__(self) -> None:
        object.__setattr__(self, "and_", _coerce_children(self.and_))
        object.__setattr__(self, "or_", _coerce_children(self.or_))

    @classmethod
    def of(cls, operator: Operator | str, children: Iterable["RuleNode | str"]) -> "Group":
        """Build a group whose only populated list is ``operator``."""
        if Operator(operator) is Operator.AND:
            return cls(and_=tuple(children))
        return cls(or_=tuple(children))

    @classmethod
    def all_of(cls, *children: "RuleNode | str") -> "Group":
        return cls(and_=children)

    @classmethod
    def any_of(cls, *children: "RuleNode | str") -> "Group":
        return cls(or_=children)

    def children(self, operator: Operator | str) -> tuple["RuleNode", ...]:
        return self.and_ if Operator(operator) is Operator.AND else self.or_

    @property
    def is_empty(self) -> bool:
        return not self.and_ and not self.or_

    def __len__(self) -> int:
        """Return the number of direct children across both lists."""
        return len(self.and_) + len(self.or_)

    def validate(self) -> "Group":
        """
        Check that the rule can be sent to Armis.

        Returns:
            The group itself, for chaining

        Raises:
            ValidationError: If both lists are empty
        """
        if self.is_empty:
            raise ValidationError("rule must have at least one 'and' or 'or' condition")
        return self

    def encode(self) -> dict[str, list[Any]]:
        """
        Serialize to the Armis rule JSON shape.

        Empty lists are omitted. Leaves become strings and nested groups
        become nested objects, so each list may mix both.
        """
        payload: dict[str, list[Any]] = {}
        for operator in Operator:
            children = self.children(operator)
            if children:
                payload[operator.value] = [encode_node(child) for child in children]
        return payload

    @classmethod
    def decode(cls, value: object) -> "Group":
        """
        Build a group from the Armis rule JSON shape.

        Decoding is lenient because it reads server data: a null rule, an
        object with no ``and``/``or`` key, or one with only empty or null
        lists, yields an empty group.

        Raises:
            DecodeError: If ``value`` is not an object, a list member is not a
                list, or a list element is neither a string nor an object
        """
        if value is None:
            return cls()
        if not isinstance(value, Mapping):
            raise DecodeError(
                f"rule must be a JSON object, got {_json_kind(value)}",
                context={"kind": _json_kind(value)},
            )

        lists: dict[Operator, tuple[RuleNode, ...]] = {}
        for operator in Operator:
            raw = value.get(operator.value)
            if raw is None:
                lists[operator] = ()
                continue
            if not isinstance(raw, list):
                raise DecodeError(
                    f"rule '{operator.value}' must be a JSON array, got {_json_kind(raw)}",
                    context={"key": operator.value, "kind": _json_kind(raw)},
                )
            lists[operator] = tuple(decode_node(element) for element in raw)

        return cls(and_=lists[Operator.AND], or_=lists[Operator.OR])

    @classmethod
    def __get_pydantic_core_schema__(
        cls,
        source_type: Any,
        handler: GetCoreSchemaHandler,
    ) -> CoreSchema:
        # Model fields typed as Group accept either a Group or rule JSON
        return core_schema.no_info_plain_validator_function(
            _validate_model_input,
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda group: group.encode(),
            ),
        )


RuleNode = Union[Leaf, Group]


def encode_node(node: RuleNode) -> str | dict[str, list[Any]]:
    """Encode one list element: a string for a Leaf, an object for a Group."""
    if isinstance(node, Leaf):
        return node.encode()
    if isinstance(node, Group):
        return node.encode()
    raise TypeError(f"unsupported rule node: {type(node).__name__}")


def decode_node(value: object) -> RuleNode:
    """
    Decode one list element by peeking at its JSON type.

    Raises:
        DecodeError: If the element is neither a string nor an object
    """
    if isinstance(value, str):
        return Leaf(value)
    if isinstance(value, Mapping):
        return Group.decode(value)
    raise DecodeError(
        "unsupported rule element type",
        context={"kind": _json_kind(value)},
    )


def build_rule(
    and_: Iterable[RuleNode | str] = (),
    or_: Iterable[RuleNode | str] = (),
) -> Group:
    """
    Build a top-level rule for an outbound create or update request.

    Raises:
        ValidationError: If both ``and_`` and ``or_`` are empty
    """
    return Group(and_=tuple(and_), or_=tuple(or_)).validate()


def decode_rule(value: object) -> Group:
    """Decode a rule object received from Armis. See ``Group.decode``."""
    return Group.decode(value)


def _coerce_children(children: Iterable[object]) -> tuple[RuleNode, ...]:
    coerced: list[RuleNode] = []
    for child in children:
        if isinstance(child, str):
            coerced.append(Leaf(child))
        elif isinstance(child, (Leaf, Group)):
            coerced.append(child)
        else:
            raise ValidationError(
                f"rule children must be strings, Leaf or Group, got {type(child).__name__}"
            )
    return tuple(coerced)


def _validate_model_input(value: object) -> Group:
    if isinstance(value, Group):
        return value
    return Group.decode(value)


def _json_kind(value: object) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__
