from typing import Optional

from fastapi import Request
from passlib.context import CryptContext

from .errors import AuthenticationError

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

SESSION_MAX_AGE = 60 * 60 * 24 * 30


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)


def pin_hash(request: Request) -> Optional[str]:
    return getattr(request.app.state, "pin_hash", None)


def is_authenticated(request: Request) -> bool:
    return bool(request.session.get("authenticated"))


def require_household(request: Request):
    """Gate for API routes; open when no household PIN is configured."""
    if pin_hash(request) is None:
        return
    if not is_authenticated(request):
        raise AuthenticationError()


def login_household(request: Request, pin: str) -> bool:
    hashed = pin_hash(request)
    if hashed is None:
        return True
    if not pin or not verify_password(pin, hashed):
        return False
    request.session["authenticated"] = True
    return True


def logout_household(request: Request):
    request.session.clear()
