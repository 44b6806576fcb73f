# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Typed request and result models for the remote sync endpoint.

Each outbound action is its own variant tagged by ``action``; inbound
responses are parsed into either ``RemoteSuccess`` or ``RemoteFailure``.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator
from .base import CamelModel


class CreateIssueAction(CamelModel):
    action: Literal["createIssue"] = "createIssue"
    payload: Dict[str, Any]


class UpdateIssueAction(CamelModel):
    action: Literal["updateIssue"] = "updateIssue"
    id: str
    payload: Dict[str, Any]


class SubmitRegistrationAction(CamelModel):
    action: Literal["submitRegistration"] = "submitRegistration"
    payload: Dict[str, Any]


class ReviewRegistrationAction(CamelModel):
    action: Literal["reviewRegistration"] = "reviewRegistration"
    id: str
    review_action: str
    note: Optional[str] = None


class SubmitBonusRequestAction(CamelModel):
    action: Literal["submitBonusRequest"] = "submitBonusRequest"
    payload: Dict[str, Any]


class ReviewBonusRequestAction(CamelModel):
    action: Literal["reviewBonusRequest"] = "reviewBonusRequest"
    id: str
    review_action: str
    note: Optional[str] = None


RemoteAction = Annotated[
    Union[
        CreateIssueAction,
        UpdateIssueAction,
        SubmitRegistrationAction,
        ReviewRegistrationAction,
        SubmitBonusRequestAction,
        ReviewBonusRequestAction,
    ],
    Field(discriminator="action")
]

remote_action_adapter = TypeAdapter(RemoteAction)


class RemoteSuccess(BaseModel):
    """Well-formed ``{ok: true}`` response."""

    ok: Literal[True] = True
    data: Dict[str, Any] = Field(default_factory=dict)
    time: Optional[str] = None


class RemoteFailure(BaseModel):
    """Failed call: transport error, bad status, malformed JSON or ``{ok: false}``."""

    ok: Literal[False] = False
    reason: str
    status_code: Optional[int] = None


RemoteResult = Union[RemoteSuccess, RemoteFailure]


def parse_remote_result(body: Any, status_code: Optional[int] = None) -> RemoteResult:
    """
    Parse a decoded JSON body into a tagged result.

    Args:
        body: Decoded JSON response
        status_code: HTTP status of the response

    Returns:
        RemoteSuccess when the body is an object with ``ok: true``,
        RemoteFailure otherwise
    """
    if not isinstance(body, dict):
        return RemoteFailure(reason="Response is not a JSON object", status_code=status_code)

    if body.get("ok") is not True:
        reason = body.get("error") or body.get("message") or "Remote reported failure"
        return RemoteFailure(reason=str(reason), status_code=status_code)

    data = body.get("data")
    if data is not None and not isinstance(data, dict):
        return RemoteFailure(reason="Response data is not an object", status_code=status_code)

    time_value = body.get("time")
    return RemoteSuccess(
        data=data or {},
        time=str(time_value) if time_value is not None else None
    )


class RemoteSnapshot(CamelModel):
    """Collections returned by ``getAllData``, normalized to lists of raw records."""

    issues: List[Dict[str, Any]] = Field(default_factory=list)
    registrations: List[Dict[str, Any]] = Field(default_factory=list)
    bonus_requests: List[Dict[str, Any]] = Field(default_factory=list)

    @field_validator('issues', 'registrations', 'bonus_requests', mode='before')
    @classmethod
    def normalize_collection(cls, v):
        """Accept either a list of records or an id-keyed mapping."""
        if v is None:
            return []
        if isinstance(v, dict):
            return [record for record in v.values() if isinstance(record, dict)]
        if isinstance(v, list):
            return [record for record in v if isinstance(record, dict)]
        raise ValueError('Collection must be a list or an object')


def parse_snapshot(data: Dict[str, Any]) -> Optional[RemoteSnapshot]:
    """Parse ``getAllData`` payload, returning None when it is unusable."""
    try:
        return RemoteSnapshot.model_validate(data)
    except ValidationError:
        return None
