"""Request principal, taken from headers set by the authentication gateway.

The workshop only uses the principal for attribution (``created_by``,
``requested_by``, ``approved_by``); authorization happens upstream.
"""

from fastapi import Header, HTTPException
from pydantic import BaseModel


class Principal(BaseModel):
    user_id: str
    role: str | None = None


async def current_principal(
    x_user_id: str = Header(default=""),
    x_user_role: str = Header(default=""),
) -> Principal:
    if not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return Principal(user_id=x_user_id.strip(), role=x_user_role.strip() or None)
