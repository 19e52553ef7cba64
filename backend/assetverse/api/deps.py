"""Request Dependencies — trusted principal and webhook authentication.

Invariants:
    - The principal comes from X-Principal-Id / X-Principal-Role, set by the
      upstream identity provider; missing or malformed headers -> 401
    - Subscription writes require X-Webhook-Token matching the configured secret

Design Decisions:
    - HTTPException for 401: authentication happens before any domain logic,
      so there is no AssetVerseError to map
"""

import hmac
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status

from assetverse.config import Settings, get_settings
from assetverse.core.domain_types import Principal, Role


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status.HTTP_401_UNAUTHORIZED,
        detail={"error": {"code": "UNAUTHENTICATED", "message": message}},
    )


async def get_principal(
    x_principal_id: str | None = Header(None),
    x_principal_role: str | None = Header(None),
) -> Principal:
    if not x_principal_id or not x_principal_role:
        raise _unauthorized("Missing principal headers")
    try:
        return Principal(id=UUID(x_principal_id), role=Role(x_principal_role.lower()))
    except ValueError:
        raise _unauthorized("Malformed principal headers")


async def verify_webhook_token(
    x_webhook_token: str | None = Header(None),
    settings: Settings = Depends(get_settings),
) -> None:
    if not x_webhook_token or not hmac.compare_digest(
        x_webhook_token.encode(), settings.subscription_webhook_token.encode(),
    ):
        raise _unauthorized("Invalid webhook token")
