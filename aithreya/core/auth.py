import logging
from typing import Iterable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from aithreya.core.database import get_db
from aithreya.core.errors import Forbidden, Unauthenticated
from aithreya.core.security import ACCESS, ExpiredToken, MalformedToken, TokenService
from aithreya.models.orm import User

logger = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


def authenticate(token: Optional[str], db: Session, tokens: TokenService) -> User:
    if not token:
        raise Unauthenticated("Not authorized to access this route. Please provide a valid token.")
    try:
        payload = tokens.verify(token, ACCESS)
    except ExpiredToken:
        raise Unauthenticated("Token expired. Please login again.")
    except MalformedToken:
        raise Unauthenticated("Invalid token. Please login again.")

    user = db.get(User, payload.user_id)
    if user is None:
        raise Unauthenticated("User not found. Token may be invalid.")
    if not user.is_active:
        raise Unauthenticated("User account is deactivated.")
    return user


def get_current_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> User:
    try:
        return authenticate(creds.credentials if creds else None, db, tokens)
    except Unauthenticated as exc:
        logger.info(f"Authentication rejected: {exc.message}")
        raise


def get_optional_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> Optional[User]:
    if creds is None:
        return None
    try:
        return authenticate(creds.credentials, db, tokens)
    except Unauthenticated:
        logger.debug("Optional auth: invalid or expired token")
        return None


def check_roles(user: Optional[User], allowed: Iterable[str]) -> None:
    if user is None:
        raise Unauthenticated("Not authenticated.")
    if user.role not in set(allowed):
        raise Forbidden(f"User role '{user.role}' is not authorized to access this route.")


def require_roles(*required: str):
    def checker(user: User = Depends(get_current_user)) -> User:
        check_roles(user, required)
        return user
    return checker
