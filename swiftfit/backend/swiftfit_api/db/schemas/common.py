from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for API payloads: camelCase on the wire, snake_case in Python."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True
