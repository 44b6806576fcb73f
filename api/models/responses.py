# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Response models for API endpoints with HAL support.
"""

from typing import Optional
from pydantic import BaseModel, Field
from .base import CamelModel
from .entities import Unit


class HalLink(BaseModel):
    """HAL link representation."""

    href: str = Field(..., description="Link URL")
    method: Optional[str] = Field(None, description="HTTP method")
    type: Optional[str] = Field(None, description="Content type")
    title: Optional[str] = Field(None, description="Link title")
    templated: Optional[bool] = Field(None, description="Whether URL is templated")


class LoginChallenge(CamelModel):
    """Result of the first login step."""

    email: str = Field(..., description="Email the code was requested for")
    unit_name: str = Field(..., description="Matched unit name")
    otp_required: bool = Field(default=True, description="Whether a one-time code must be verified")


class SessionResponse(CamelModel):
    """Issued session with the logged-in unit."""

    token: str = Field(..., description="Signed session token")
    token_type: str = Field(default="Bearer", description="Authorization scheme")
    expires_in: int = Field(..., description="Token lifetime in seconds")
    unit: Unit = Field(..., description="Logged-in unit")
