"""
Unit tests for the rule tree.

Tests cover construction, JSON encoding of mixed string/object lists,
lenient decoding of server payloads, validation of outbound rules, and
integration with pydantic models.
"""

import json

import pytest

from armis_centrix.errors import DecodeError, ValidationError
from armis_centrix.models import ArmisModel
from armis_centrix.rules import Group, Leaf, Operator, build_rule, decode_node, decode_rule, encode_node


class RuleHolder(ArmisModel):
    rule_aql: Group


class TestGroupConstruction:
    """Tests for building groups."""

    def test_strings_are_wrapped_in_leaves(self) -> None:
        """Test that plain string children become Leaf nodes."""
        group = Group.all_of("protocol:BMS", Leaf("type:Camera"))

        assert group.and_ == (Leaf("protocol:BMS"), Leaf("type:Camera"))
        assert group.or_ == ()

    def test_of_selects_operator_list(self) -> None:
        """Test that Group.of fills only the list named by the operator."""
        assert Group.of(Operator.OR, ["a", "b"]) == Group.any_of("a", "b")
        assert Group.of("and", ["a"]) == Group.all_of("a")

    def test_unknown_operator_raises(self) -> None:
        """Test that an operator other than and/or is rejected."""
        with pytest.raises(ValueError):
            _ = Group.of("xor", ["a"])

    def test_invalid_child_type_raises(self) -> None:
        """Test that children must be strings or rule nodes."""
        with pytest.raises(ValidationError) as exc_info:
            _ = Group(and_=(42,))  # pyright: ignore[reportArgumentType]

        assert "int" in str(exc_info.value)

    def test_structural_equality(self) -> None:
        """Test that groups with the same shape compare equal."""
        left = Group.all_of("a", Group.any_of("b", "c"))
        right = Group(and_=("a", Group(or_=("b", "c"))))

        assert left == right
        assert hash(left) == hash(right)

    def test_len_counts_direct_children(self) -> None:
        """Test that len() counts both lists but not grandchildren."""
        group = Group(and_=("a", Group.any_of("b", "c")), or_=("d",))

        assert len(group) == 3


class TestEncode:
    """Tests for Group.encode."""

    def test_nested_heterogeneous_list(self) -> None:
        """Test that one list may mix strings and objects, keeping order."""
        rule = build_rule(
            and_=[
                "protocol:BMS",
                Group.any_of("content:(iPhone)", "content:(Android)"),
                "direction:outbound",
            ]
        )

        assert rule.encode() == {
            "and": [
                "protocol:BMS",
                {"or": ["content:(iPhone)", "content:(Android)"]},
                "direction:outbound",
            ]
        }

    def test_empty_lists_are_omitted(self) -> None:
        """Test that only populated lists appear in the payload."""
        assert Group.any_of("a").encode() == {"or": ["a"]}
        assert Group().encode() == {}

    def test_both_lists_are_sent(self) -> None:
        """Test that a group with both lists sends both keys unchanged."""
        group = Group(and_=("a",), or_=("b", "c"))

        assert group.encode() == {"and": ["a"], "or": ["b", "c"]}

    def test_leaf_text_is_verbatim(self) -> None:
        """Test that condition text is never rewritten."""
        text = 'name:"Main Lobby" AND  (tag:x)'
        assert Group.all_of(text).encode() == {"and": [text]}

    def test_encode_node(self) -> None:
        """Test per-element encoding."""
        assert encode_node(Leaf("a")) == "a"
        assert encode_node(Group.all_of("a")) == {"and": ["a"]}


class TestDecode:
    """Tests for decode_rule and decode_node."""

    def test_mixed_elements(self) -> None:
        """Test decoding a list holding both strings and objects."""
        payload = json.loads('{"and": ["protocol:BMS", {"or": ["a", {"and": ["b"]}]}]}')

        rule = decode_rule(payload)

        assert rule == Group.all_of("protocol:BMS", Group.any_of("a", Group.all_of("b")))

    def test_decode_then_encode_preserves_payload(self) -> None:
        """Test that a server payload survives a decode/encode pass."""
        payload: dict[str, object] = {"and": ["x", {"or": ["y", "z"]}], "or": ["w"]}

        assert decode_rule(payload).encode() == payload

    def test_missing_keys_yield_empty_group(self) -> None:
        """Test that an object without and/or decodes to an empty group."""
        rule = decode_rule({})

        assert rule.is_empty
        assert rule.encode() == {}

    def test_null_and_empty_lists_are_empty(self) -> None:
        """Test that null and [] lists decode the same way."""
        assert decode_rule({"and": None, "or": []}) == Group()

    def test_null_rule_is_empty(self) -> None:
        """Test that a null rule decodes to an empty group."""
        assert decode_rule(None) == Group()

    def test_unknown_keys_are_ignored(self) -> None:
        """Test that extra keys on a rule object do not fail decoding."""
        assert decode_rule({"and": ["a"], "not": ["b"]}) == Group.all_of("a")

    @pytest.mark.parametrize("element", [42, 1.5, True, None, ["nested"]])
    def test_unsupported_element_raises(self, element: object) -> None:
        """Test that list elements must be strings or objects."""
        with pytest.raises(DecodeError) as exc_info:
            _ = decode_rule({"and": ["ok", element]})

        assert "unsupported rule element type" in str(exc_info.value)

    def test_non_object_rule_raises(self) -> None:
        """Test that the rule itself must be an object."""
        with pytest.raises(DecodeError):
            _ = decode_rule(["a", "b"])

    def test_non_list_member_raises(self) -> None:
        """Test that and/or members must be arrays."""
        with pytest.raises(DecodeError) as exc_info:
            _ = decode_rule({"or": "a"})

        assert "'or'" in str(exc_info.value)

    def test_decode_node(self) -> None:
        """Test per-element decoding by JSON type."""
        assert decode_node("a") == Leaf("a")
        assert decode_node({"or": ["a"]}) == Group.any_of("a")


class TestRoundTrip:
    """Tests that constructed trees survive a trip through JSON text."""

    @pytest.mark.parametrize(
        "tree",
        [
            Group.all_of("protocol:BMS", Group.any_of("content:(iPhone)", "content:(Android)")),
            Group.any_of("a"),
            Group(and_=("a", "b"), or_=("c",)),
            Group.all_of(Group(and_=("x",), or_=("y", Group.all_of("z"))), "w"),
            Group.any_of(Group.all_of(Group.any_of(Group.all_of("deep")))),
            build_rule(and_=["a", Group()]),
        ],
    )
    def test_decode_of_encode_is_identity(self, tree: Group) -> None:
        """Test that encoding, serializing and decoding yields an equal tree."""
        wire = json.loads(json.dumps(tree.encode()))

        assert decode_rule(wire) == tree

    def test_mixed_list_wire_shape(self) -> None:
        """Test the exact JSON of a leaf followed by a nested or group."""
        tree = build_rule(and_=["protocol:BMS", Group.any_of("content:(iPhone)", "content:(Android)")])

        assert json.loads(json.dumps(tree.encode())) == {
            "and": ["protocol:BMS", {"or": ["content:(iPhone)", "content:(Android)"]}]
        }


class TestValidation:
    """Tests for outbound rule validation."""

    def test_build_rule_requires_a_condition(self) -> None:
        """Test that an outbound rule with no conditions is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            _ = build_rule()

        assert "at least one" in str(exc_info.value)
        assert exc_info.value.retryable is False

    def test_build_rule_with_or_only(self) -> None:
        """Test that a rule with only an or list is valid."""
        assert build_rule(or_=["a"]).encode() == {"or": ["a"]}

    def test_empty_nested_group_is_encoded_as_is(self) -> None:
        """Test that only the top level is checked for emptiness."""
        rule = build_rule(and_=["a", Group()])

        assert rule.encode() == {"and": ["a", {}]}


class TestPydanticIntegration:
    """Tests for Group as a pydantic field type."""

    def test_field_accepts_json(self) -> None:
        """Test that a model decodes rule JSON into a Group."""
        holder = RuleHolder.model_validate_json('{"ruleAql": {"and": ["a", {"or": ["b"]}]}}')

        assert holder.rule_aql == Group.all_of("a", Group.any_of("b"))

    def test_field_accepts_group_instance(self) -> None:
        """Test that a Group passes through validation unchanged."""
        rule = Group.any_of("a")

        assert RuleHolder(rule_aql=rule).rule_aql is rule

    def test_field_serializes_to_rule_json(self) -> None:
        """Test that dumping a model emits the rule JSON shape."""
        holder = RuleHolder(rule_aql=Group(and_=("a",), or_=(Group.all_of("b"),)))

        assert holder.model_dump(by_alias=True) == {"ruleAql": {"and": ["a"], "or": [{"and": ["b"]}]}}

    def test_null_field_decodes_to_empty_group(self) -> None:
        """Test that a null rule field from the server is accepted."""
        holder = RuleHolder.model_validate_json('{"ruleAql": null}')

        assert holder.rule_aql.is_empty

    def test_invalid_element_fails_model_validation(self) -> None:
        """Test that decode errors surface from model validation."""
        with pytest.raises(DecodeError):
            _ = RuleHolder.model_validate({"ruleAql": {"and": [1]}})
