from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


class RequestModel(BaseModel):
    """Request body: camelCase on the wire, unknown fields rejected."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class PartialUpdate(RequestModel):
    """PUT body where omitted fields are left alone.

    Fields named in ``not_null`` back NOT NULL columns, so an explicit null is
    rejected instead of reaching the database.
    """

    not_null: ClassVar[tuple[str, ...]] = ()

    @model_validator(mode="after")
    def reject_nulls(self):
        nulls = [name for name in self.not_null if name in self.model_fields_set and getattr(self, name) is None]
        if nulls:
            raise ValueError(f"{', '.join(nulls)} cannot be null")
        return self

    def changes(self, **kwargs: Any) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True, **kwargs)


class ResponseModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class Page(ResponseModel):
    page: int
    limit: int
    total: int
    pages: int


def page_meta(page: int, limit: int, total: int) -> Page:
    return Page(page=page, limit=limit, total=total, pages=(total + limit - 1) // limit if limit else 0)
