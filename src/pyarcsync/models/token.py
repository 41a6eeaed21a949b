"""Token issuance result models."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


class AuthSuccess(BaseModel):
    """Token returned by ``generateToken``.

    Parameters
    ----------
    token : str
        Short-lived access token.
    expires_at : datetime
        UTC expiry reported by the server.
    referer : str
        Referer the token was issued for; every request using the token
        must send it back.
    """

    model_config = ConfigDict(frozen=True)

    ok: Literal[True] = True
    token: str
    expires_at: datetime
    referer: str


class AuthFailure(BaseModel):
    model_config = ConfigDict(frozen=True)

    ok: Literal[False] = False
    reason: str


AuthResponse = Annotated[AuthSuccess | AuthFailure, Field(discriminator="ok")]
