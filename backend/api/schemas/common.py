"""Shared base model for API schemas.

The wire format is camelCase (``sessionId``, ``baseLapTime``); snake_case
field names are accepted too.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base schema with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SessionRequest(ApiModel):
    """Request body carrying only a session id."""

    session_id: str = ""
