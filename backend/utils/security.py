from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from bson import ObjectId
from bson.errors import InvalidId
from datetime import datetime

from utils.jwt import decode_token
from utils.transitions import is_admin_role
from database import get_db

security = HTTPBearer()


def _unauthenticated(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db=Depends(get_db),
):
    try:
        payload = decode_token(credentials.credentials)
    except JWTError:
        raise _unauthenticated("Invalid or expired token")

    try:
        user_id = ObjectId(payload.get("sub"))
    except (InvalidId, TypeError):
        raise _unauthenticated("Invalid token payload")

    user = await db.users.find_one({"_id": user_id})
    if not user:
        raise _unauthenticated("User not found")

    # Update last activity
    await db.users.update_one(
        {"_id": user["_id"]},
        {"$set": {"last_active_at": datetime.utcnow()}}
    )

    return user


def require_role(*roles: str):
    allowed = {r.lower() for r in roles}

    async def checker(user=Depends(get_current_user)):
        if (user.get("role") or "").lower() not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return user

    return checker


async def require_admin(
    user=Depends(get_current_user),
):
    if not is_admin_role(user.get("role")):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Admin privileges required.",
        )
    return user
