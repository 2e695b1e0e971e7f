"""Base models for all data models in the admin console.

Two flavours are provided:

- ``BaseDataModel`` for records the console builds itself (form drafts).
  Unknown fields are rejected so a typo never reaches the backend.
- ``ServerRecord`` for mirrors of rows returned by the backend. The
  server owns the schema, so unknown columns are ignored.
"""

from pydantic import BaseModel, ConfigDict


class BaseDataModel(BaseModel):
    """Base class for client-built data models.

    Example:
        >>> class Draft(BaseDataModel):
        ...     title: str
        >>> Draft(title="Call customer").model_dump()
        {'title': 'Call customer'}
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        validate_assignment=True,
        strict=False,
        extra="forbid",
        frozen=False,
    )


class ServerRecord(BaseModel):
    """Base class for thin mirrors of server rows."""

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        strict=False,
        extra="ignore",
        populate_by_name=True,
    )
