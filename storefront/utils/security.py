from datetime import datetime, timedelta
from typing import Optional, Dict, Any
from jose import JWTError, jwt
import bcrypt
from storefront.config import settings

# Bcrypt rounds
BCRYPT_ROUNDS = 12

TOKEN_TYPE_CUSTOMER = "customer"
TOKEN_TYPE_ADMIN = "admin"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash"""
    if not plain_password or not hashed_password:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))
    except ValueError:
        return False


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt"""
    if not password:
        raise ValueError("Password cannot be empty")
    
    password_bytes = password.encode('utf-8')
    
    # Truncate if longer than 72 bytes (bcrypt limit)
    if len(password_bytes) > 72:
        password_bytes = password_bytes[:72]
    
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password_bytes, salt).decode('utf-8')


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token"""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    
    to_encode.update({"exp": expire, "iat": datetime.utcnow()})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_customer_token(customer_id: str, email: str) -> str:
    return create_access_token({"sub": str(customer_id), "email": email, "type": TOKEN_TYPE_CUSTOMER})


def create_admin_token(admin_id: str, email: str, role: str) -> str:
    return create_access_token({"sub": str(admin_id), "email": email, "role": role, "type": TOKEN_TYPE_ADMIN})


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    """Decode and verify JWT token"""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


def verify_token(token: str, token_type: str) -> Optional[str]:
    """Verify token and return the subject id if it is of the expected type"""
    payload = decode_token(token)
    if payload and payload.get("type") == token_type:
        return payload.get("sub")
    return None
