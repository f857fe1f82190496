"""HTTP Basic authentication resolving callers to opaque owner ids."""

import hashlib
from pathlib import Path
from typing import Dict, Optional

import bcrypt
from fastapi import Depends, Request
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from common.logging_config import get_logger
from fragments.exceptions import UnauthorizedError

logger = get_logger(__name__)

security = HTTPBasic(auto_error=False)


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password to hash

    Returns:
        Bcrypt hash of the password
    """
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify a password against a bcrypt hash.

    Args:
        password: Plain text password to verify
        password_hash: Bcrypt hash to verify against

    Returns:
        True if password matches hash, False otherwise
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


def hash_owner(email: str) -> str:
    """
    Derive the opaque owner id for an authenticated email.

    Args:
        email: Authenticated user's email

    Returns:
        SHA-256 hex digest of the email
    """
    return hashlib.sha256(email.encode('utf-8')).hexdigest()


class UserStore:
    """
    Credentials loaded from a users file with one ``email:bcrypt_hash`` per line.

    Blank lines and lines starting with ``#`` are ignored.
    """

    def __init__(self, users: Optional[Dict[str, str]] = None):
        self._users: Dict[str, str] = dict(users or {})

    @classmethod
    def from_file(cls, path: str) -> "UserStore":
        users_path = Path(path)
        if not users_path.exists():
            logger.warning(f"Users file not found, all requests will be rejected [path={path}]")
            return cls()

        users = {}
        for line_number, line in enumerate(users_path.read_text(encoding='utf-8').splitlines(), start=1):
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            email, sep, password_hash = line.partition(':')
            if not sep or not email or not password_hash:
                logger.warning(f"Skipping malformed users file entry [path={path}] [line={line_number}]")
                continue
            users[email] = password_hash

        logger.info(f"Loaded {len(users)} users [path={path}]")
        return cls(users)

    def __len__(self) -> int:
        return len(self._users)

    def authenticate(self, email: str, password: str) -> bool:
        password_hash = self._users.get(email)
        if password_hash is None:
            return False
        return verify_password(password, password_hash)


async def get_current_owner(
    request: Request,
    credentials: Optional[HTTPBasicCredentials] = Depends(security),
) -> str:
    """
    FastAPI dependency to authenticate the caller and resolve its owner id.

    Args:
        request: Incoming request (the user store lives on app.state)
        credentials: HTTP Basic credentials, if any were sent

    Returns:
        Opaque owner id (hashed email)

    Raises:
        UnauthorizedError: If credentials are missing or invalid
    """
    if credentials is None:
        raise UnauthorizedError()

    user_store: UserStore = request.app.state.user_store
    if not user_store.authenticate(credentials.username, credentials.password):
        logger.warning(f"Rejected credentials [path={request.url.path}]")
        raise UnauthorizedError()

    owner_id = hash_owner(credentials.username)
    request.state.owner_id = owner_id
    logger.debug(f"Authenticated user [owner_id={owner_id}]")
    return owner_id
