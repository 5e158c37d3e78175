"""
Authentication for the QuickStage API.

We do not issue or check tokens ourselves: the bearer token is passed on to the OAuth "me" endpoint of the
identity service, and whatever user it returns is trusted.
"""

import logging

import httpx
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import ValidationError as PydanticValidationError

from quickstage.config import Settings, get_settings
from quickstage.models import User

logger = logging.getLogger("quickstage.auth")

bearer_scheme = HTTPBearer(auto_error=False, scheme_name="Bearer token")


class InvalidToken(ValueError):
    pass


async def fetch_identity(me_url: str, token: str, timeout: float) -> User:
    """
    Ask the identity service who this token belongs to.

    raises a InvalidToken exception if the token could not be validated
    """
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            r = await client.get(me_url, headers={"Authorization": f"Bearer {token}"})
    except httpx.HTTPError as e:
        raise InvalidToken(f"Identity service not reachable: {type(e).__name__}") from e
    if not r.is_success:
        raise InvalidToken(f"Identity service returned {r.status_code}")
    try:
        data = r.json()
    except ValueError as e:
        raise InvalidToken("Identity service did not return JSON") from e
    if not isinstance(data, dict) or not (data.get("id") or data.get("email")):
        raise InvalidToken("Identity service did not return a user id or email")
    try:
        return User(
            id=str(data["id"]) if data.get("id") is not None else None,
            email=data.get("email") or None,
            name=data.get("name"),
        )
    except PydanticValidationError as e:
        raise InvalidToken("Identity service returned an invalid user") from e


async def authenticated_user(
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> User:
    """
    Authenticates the user based on the provided bearer token.
    """
    if credentials is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    if not settings.oauth_me_url:
        logger.error("auth.not_configured: set QUICKSTAGE_OAUTH_ME_URL to validate tokens")
        raise HTTPException(status_code=401, detail="Unauthorized")
    try:
        return await fetch_identity(settings.oauth_me_url, credentials.credentials, settings.oauth_timeout)
    except InvalidToken as e:
        logger.warning(f"auth.rejected reason={e}")
        raise HTTPException(status_code=401, detail="Unauthorized") from e
