from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Any, Optional


class CamelModel(BaseModel):
    """Wire model: camelCase on the wire, snake_case in Python, unknown fields ignored"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        extra="ignore",
    )

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ResponseData(CamelModel):
    """Standard envelope returned by every endpoint"""
    status: bool
    response_status: Optional[str] = None
    message: str
    data: Optional[Any] = None


def envelope(message: str, data: Any = None, response_status: Optional[str] = None, status: bool = True) -> dict:
    """Build a successful (by default) envelope with null fields omitted"""
    return ResponseData(
        status=status, response_status=response_status, message=message, data=data
    ).to_wire()
