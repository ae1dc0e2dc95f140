"""
Authentication Utility - JWT and Password handling.

Provides:
- Password hashing with bcrypt
- JWT token creation/verification
- FastAPI dependencies for protected routes (student / employer / admin)
"""

from datetime import timedelta
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from studentjobs.core.config import get_settings
from studentjobs.core.exceptions import AuthenticationException, AuthorizationException
from studentjobs.db.documents import utcnow
from studentjobs.db.mongodb import COLLECTIONS, get_collection
from studentjobs.schemas.schemas import UserType

settings = get_settings()

# Password hashing
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)

# Bearer token extractor
bearer_scheme = HTTPBearer()
optional_bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    """Hash password with bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify password against hash."""
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # stored value is not a bcrypt hash
        return False


def create_access_token(user: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token for a user document."""
    expire = utcnow() + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode = {
        "sub": str(user["_id"]),
        "userType": user.get("userType"),
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme)) -> dict:
    """
    FastAPI dependency - Get current authenticated user document.

    Usage:
        @router.get("/protected")
        async def route(user: dict = Depends(get_current_user)):
            return user
    """
    payload = decode_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        raise AuthenticationException("Invalid or expired token")

    try:
        user_id = ObjectId(payload["sub"])
    except InvalidId:
        raise AuthenticationException("Invalid or expired token")

    user = get_collection(COLLECTIONS["users"]).find_one({"_id": user_id})
    if not user:
        raise AuthenticationException("User no longer exists")

    if not user.get("isActive", True):
        raise AuthorizationException("Account deactivated")

    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_bearer_scheme),
) -> Optional[dict]:
    """Like get_current_user, but anonymous requests get None."""
    if credentials is None:
        return None
    return await get_current_user(credentials)


def _require(user_type: UserType, label: str):
    async def dependency(user: dict = Depends(get_current_user)) -> dict:
        if user.get("userType") != user_type.value:
            raise AuthorizationException(f"{label} only")
        return user
    return dependency


require_student = _require(UserType.student, "Students")
require_employer = _require(UserType.employer, "Employers")
require_admin = _require(UserType.admin, "Admins")
