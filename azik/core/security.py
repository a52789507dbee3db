from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from .config import Settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl="/api/v1/users/login",
    description="Enter the access token directly (without 'Bearer' prefix)",
    scheme_name="JWT"
)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

def create_access_token(user: Dict[str, Any], settings: Settings, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed session token carrying the user's id, role and name."""
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.jwt_expiration_minutes))
    to_encode = {
        "sub": user["id"],
        "role": user["role"],
        "first_name": user["first_name"],
        "last_name": user["last_name"],
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)

def decode_access_token(token: str, settings: Settings) -> Dict[str, Any]:
    """Decode a session token, raising ``JWTError`` if it is invalid or expired."""
    payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    if not payload.get("sub"):
        raise JWTError("Token missing 'sub' claim")
    return payload
