from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class Base(BaseModel):
    model_config = ConfigDict(
        from_attributes=True, use_enum_values=True, extra="forbid"
    )


class CamelModel(Base):
    """Models exchanged with clients use camelCase keys on the wire."""

    model_config = ConfigDict(
        from_attributes=True,
        use_enum_values=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class SuccessResponse(Base):
    success: bool
