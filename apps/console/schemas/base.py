"""Base schema for camelCase JSON exchanged with the console front-end."""
from typing import Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Python attributes are snake_case, the wire stays camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        protected_namespaces=(),
    )

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# ints stay ints on the wire (4000, not 4000.0)
Number = Union[int, float]
