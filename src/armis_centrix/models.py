"""
Base model and field types shared by the Armis resource models.

Armis uses camelCase keys on the wire; models declare snake_case attributes
and the alias generator maps between them. Unknown keys are ignored so new
server fields never break decoding.
"""

from typing import Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel


class ArmisModel(BaseModel):
    """Base for Armis payloads: camelCase aliases, unknown keys ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_payload(self) -> dict[str, object]:
        """Return the JSON body Armis expects, with unset optionals omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def _to_str(value: object) -> object:
    # Armis returns some ids as numbers and others as strings
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


def _to_str_list(value: object) -> object:
    if isinstance(value, str):
        return [value]
    return value


# An id that may arrive as a JSON number or string; always held as str
ArmisId = Annotated[str, BeforeValidator(_to_str)]

# A list of strings that may arrive as a single bare string
StringList = Annotated[list[str], BeforeValidator(_to_str_list)]
