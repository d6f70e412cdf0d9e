"""
API dependencies for dependency injection.

Authentication happens upstream; the caller arrives as the ``X-User-Id``
header. With ``DISABLE_AUTH`` a fixed development id stands in.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status

from taskpilot.infra.config.logging_config import bind_context
from taskpilot.infra.container import Container

DEV_USER_ID = "dev-user"


def get_container(request: Request) -> Container:
    return request.app.state.container


async def get_current_user_id(
    x_user_id: Optional[str] = Header(default=None),
    container: Container = Depends(get_container),
) -> str:
    """
    Resolve the calling user.

    Raises:
        HTTPException: 401 when no user id is supplied and auth is enabled
    """
    user_id = (x_user_id or "").strip()
    if not user_id:
        if not container.settings.disable_auth:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="X-User-Id header required",
            )
        user_id = DEV_USER_ID
    bind_context(user_id=user_id)
    return user_id
