from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Python attributes stay snake_case, JSON on the wire is camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
