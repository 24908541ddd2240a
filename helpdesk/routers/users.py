# helpdesk/routers/users.py
from typing import Literal, Optional

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk.auth import TokenClaims
from helpdesk.dependencies import get_db, require_admin
from helpdesk.models import User

router = APIRouter(prefix="/api/users", tags=["Users"])


# -----------------------------
# LIST Users (admin only)
# -----------------------------
@router.get("")
async def list_users(
    role: Optional[Literal["admin", "agent", "user"]] = None,
    db: AsyncSession = Depends(get_db),
    current_user: TokenClaims = Depends(require_admin),
):
    stmt = select(User.id, User.username, User.email, User.role, User.created_at).order_by(User.id)
    if role:
        stmt = stmt.where(User.role == role)

    rows = (await db.execute(stmt)).all()
    users = [
        {
            "id": r.id,
            "username": r.username,
            "email": r.email,
            "role": r.role,
            "created_at": r.created_at.isoformat() if r.created_at else None,
        }
        for r in rows
    ]
    return {"users": users}
