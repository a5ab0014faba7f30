from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ConfiguredBaseModel(BaseModel):
    model_config = ConfigDict(use_enum_values=True)


class CamelCaseModel(ConfiguredBaseModel):
    """Base for models returned over HTTP: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        use_enum_values=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )
