from datetime import datetime, timedelta
from typing import Optional, Dict, Any
from jose import ExpiredSignatureError, JWTError, jwt
import bcrypt
import secrets
import string
from fastapi.security import HTTPBearer

from academy.core.config import settings
from academy.core.exceptions import AuthenticationError

# Bearer token security; auto_error is off so a missing header maps to our 401 body
security = HTTPBearer(auto_error=False)

TEMP_PASSWORD_ALPHABET = string.ascii_letters + string.digits


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password"""
    # Bcrypt has a 72 byte limit - truncate password if necessary
    password_bytes = plain_password.encode('utf-8')[:72]
    return bcrypt.checkpw(password_bytes, hashed_password.encode('utf-8'))


def get_password_hash(password: str) -> str:
    """Hash password with configurable rounds (BCRYPT_ROUNDS in .env)"""
    password_bytes = password.encode('utf-8')[:72]
    hashed = bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS))
    return hashed.decode('utf-8')


def generate_temp_password(length: int = 12) -> str:
    """Random password issued to buyers pre-registered by the public UPI flow"""
    return "".join(secrets.choice(TEMP_PASSWORD_ALPHABET) for _ in range(length))


def create_access_token(
    subject: str,
    user_type: str,
    expires_delta: Optional[timedelta] = None,
    extra_claims: Optional[Dict[str, Any]] = None,
) -> str:
    """Create JWT access token carrying the account id and its type (student/admin)"""
    to_encode: Dict[str, Any] = dict(extra_claims or {})

    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"sub": subject, "user_type": user_type, "exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Decode JWT token"""
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except JWTError:
        raise AuthenticationError("Invalid token")
