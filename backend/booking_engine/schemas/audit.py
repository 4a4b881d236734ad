# backend/booking_engine/schemas/audit.py
"""
Typed change entries stored on audit rows.

Each entry is tagged by ``kind`` so consumers can match on the variants they
understand (status changes, idempotency flags) and treat anything else as a
generic key/value bag.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)


class StatusChange(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["status_change"] = "status_change"
    from_status: str
    to_status: str
    reason: Optional[str] = None


class FlagSet(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["flag_set"] = "flag_set"
    flag: Literal["reminder_sent", "confirmation_sent"]


class GenericChange(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["generic"] = "generic"
    values: Dict[str, Any] = Field(default_factory=dict)


AuditChange = Annotated[Union[StatusChange, FlagSet, GenericChange], Field(discriminator="kind")]

_change_adapter: TypeAdapter[AuditChange] = TypeAdapter(AuditChange)


def parse_change(raw: Mapping[str, Any]) -> AuditChange:
    """Parse a stored change entry, falling back to GenericChange for unknown shapes."""
    try:
        return _change_adapter.validate_python(dict(raw))
    except ValidationError:
        logger.debug("Unrecognised audit change %s; keeping as generic", raw)
        return GenericChange(values={k: v for k, v in raw.items() if k != "kind"})


def parse_changes(raw: Optional[List[Mapping[str, Any]]]) -> List[AuditChange]:
    return [parse_change(entry) for entry in raw or []]


def dump_changes(changes: List[AuditChange]) -> List[Dict[str, Any]]:
    return [change.model_dump(mode="json") for change in changes]
