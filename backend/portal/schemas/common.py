"""
Shared schema base classes.
"""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema whose fields travel as camelCase on the wire.

    Python code uses the snake_case attribute names; requests may use either
    spelling and responses are serialized with the camelCase aliases.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
