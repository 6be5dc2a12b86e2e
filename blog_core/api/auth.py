"""
Principal helper library for the core REST API

The core doesn't implement any login flow. Requests carry a JSON web
token issued elsewhere (or by the ``token`` CLI command) whose subject
is the e-mail address of the principal. Only the configured admin
e-mail address is allowed to modify posts.
"""

import datetime
from typing import Optional

from jose import jwt

from ..schemas.config import AuthConfig


def create_access_token(subject: str, config: AuthConfig, expiration_minutes: Optional[int] = None) -> str:
    now = datetime.datetime.now(datetime.timezone.utc)
    lifetime = datetime.timedelta(minutes=expiration_minutes or config.token_lifetime_minutes)
    return jwt.encode(
        {
            "exp": now + lifetime,
            "iat": now,
            "sub": subject
        },
        config.token_secret,
        algorithm=config.token_algorithm
    )


def decode_access_token(token: str, config: AuthConfig) -> str:
    """
    Validate the token and return its subject

    :raises ValueError: if the token is invalid, expired or has no subject
    """

    try:
        payload = jwt.decode(
            token,
            config.token_secret,
            algorithms=[config.token_algorithm],
            options={"require_exp": True, "require_iat": True}
        )
    except jwt.JWTError as exc:
        raise ValueError(str(exc)) from exc
    subject = payload.get("sub", None)
    if not subject:
        raise ValueError("Token has no subject")
    return subject


def is_admin(principal: Optional[str], config: AuthConfig) -> bool:
    if not principal or not principal.strip() or not config.admin_email:
        return False
    return principal.strip().lower() == config.admin_email.strip().lower()
