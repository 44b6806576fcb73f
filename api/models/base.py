# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Base models with shared serialization settings.

Everything persisted in the store or sent to the remote endpoint uses
camelCase keys, so models declare snake_case fields and rely on the alias
generator for the wire shape.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Dict
from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def epoch_ms(moment: datetime) -> int:
    """Milliseconds since the Unix epoch."""
    return int(moment.timestamp() * 1000)


def _ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# Naive timestamps coming from older records are read as UTC.
UtcDatetime = Annotated[datetime, AfterValidator(_ensure_utc)]


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        # Allow population by field name or alias
        populate_by_name=True,
        use_enum_values=True,
        validate_assignment=True
    )

    def to_document(self) -> Dict[str, Any]:
        """JSON-compatible dict in the persisted/wire shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
