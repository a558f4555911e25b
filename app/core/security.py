from datetime import datetime, timedelta, timezone
from typing import Any, Union, Optional
from jose import jwt
import bcrypt
import re
import uuid
from app.core.config import settings

ALGORITHM = settings.ALGORITHM
SECRET_KEY = settings.SECRET_KEY


def _create_token(subject: Union[str, Any], token_type: str, expires_delta: timedelta) -> str:
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode = {"exp": expire, "sub": str(subject), "type": token_type}
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def create_access_token(
    subject: Union[str, Any], expires_delta: Optional[timedelta] = None
) -> str:
    if not expires_delta:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return _create_token(subject, "access", expires_delta)


def create_refresh_token(
    subject: Union[str, Any], expires_delta: Optional[timedelta] = None
) -> str:
    if not expires_delta:
        expires_delta = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    # jti keeps two refresh tokens issued in the same second distinct
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode = {
        "exp": expire,
        "sub": str(subject),
        "type": "refresh",
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"), hashed_password.encode("utf-8")
        )
    except ValueError:
        return False


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(12)).decode("utf-8")


def sanitize_input(text: Optional[str], max_length: int = 1000) -> str:
    """Strip control bytes and obvious script vectors from free text."""
    if not text:
        return ""

    text = text.replace('\x00', '').strip()

    if len(text) > max_length:
        text = text[:max_length]

    dangerous_patterns = [
        r'<script[^>]*>',
        r'javascript:',
        r'on\w+\s*=',
        r'<iframe[^>]*>',
        r'<object[^>]*>',
        r'<embed[^>]*>',
    ]

    for pattern in dangerous_patterns:
        text = re.sub(pattern, '', text, flags=re.IGNORECASE)

    return text


def validate_file_extension(filename: str, allowed_extensions: list) -> bool:
    """Validate file extension to prevent malicious uploads"""
    if not filename:
        return False

    ext = filename.split('.')[-1].lower() if '.' in filename else ''
    return ext in [e.lower().lstrip('.') for e in allowed_extensions]


def generate_secure_filename(original_filename: Optional[str]) -> str:
    """Generate a random filename while preserving the extension"""
    if not original_filename:
        return str(uuid.uuid4())

    parts = original_filename.rsplit('.', 1)
    ext = re.sub(r'[^a-z0-9]', '', parts[-1].lower()) if len(parts) > 1 else ''

    secure_name = str(uuid.uuid4())

    return f"{secure_name}.{ext}" if ext else secure_name
