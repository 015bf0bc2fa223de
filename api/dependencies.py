"""API Dependencies - Authentication"""
from typing import Dict, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError

from domain.auth import User, UserInDB, Principal
from domain.enums import UserRole
from infrastructure.security import decode_access_token, get_password_hash
from api.schemas import TokenData

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")

# Demo accounts, one per role; a user store would replace this
_SEED_USERS = [
    # username, full name, role, password, fixed id
    ("admin", "Admin User", UserRole.ADMIN, "admin123", "123e4567-e89b-12d3-a456-426614174000"),
    ("staff", "Front Desk", UserRole.STAFF, "staff123", "123e4567-e89b-12d3-a456-426614174001"),
    ("guest", "Guest User", UserRole.GUEST, "guest123", "123e4567-e89b-12d3-a456-426614174002"),
    ("other_guest", "Another Guest", UserRole.GUEST, "other123", "123e4567-e89b-12d3-a456-426614174003"),
]

fake_users_db: Dict[str, dict] = {
    username: {
        "user_id": UUID(user_id),
        "username": username,
        "full_name": full_name,
        "email": f"{username}@example.com",
        "role": role,
        "plain_password": password,
        "disabled": False,
    }
    for username, full_name, role, password, user_id in _SEED_USERS
}

# bcrypt is slow, so each seed password is hashed once on first login
_password_hash_cache: Dict[str, str] = {}


def _hashed_password_for(username: str) -> str:
    if username not in _password_hash_cache:
        _password_hash_cache[username] = get_password_hash(fake_users_db[username]["plain_password"])
    return _password_hash_cache[username]


def get_user(db: Dict[str, dict], username: str) -> Optional[UserInDB]:
    record = db.get(username)
    if record is None:
        return None
    fields = {k: v for k, v in record.items() if k != "plain_password"}
    return UserInDB(**fields, hashed_password=_hashed_password_for(username))


async def get_current_user(token: str = Depends(oauth2_scheme)) -> UserInDB:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_access_token(token)
        username: str = payload.get("sub")
        if username is None:
            raise credentials_exception
        token_data = TokenData(username=username)
    except JWTError:
        raise credentials_exception

    user = get_user(fake_users_db, username=token_data.username)
    if user is None:
        raise credentials_exception
    return user


async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    if current_user.disabled:
        raise HTTPException(status_code=400, detail="Inactive user")
    return current_user


async def get_principal(current_user: User = Depends(get_current_active_user)) -> Principal:
    """The authenticated actor handed to lifecycle operations"""
    return current_user.to_principal()
