"""In-memory user store for signup/login.

One store per app instance; nothing survives a restart. bcrypt hashing is
slow, so callers on the event loop should run ``signup`` and
``login`` in a worker thread.
"""

import logging
import threading

from passlib.context import CryptContext

from errors import InvalidCredentialsError, UserExistsError, UserNotFoundError

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed: str) -> bool:
    return pwd_context.verify(plain_password, hashed)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserStore:
    def __init__(self):
        self._users: dict[str, str] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._users)

    def signup(self, email: str, password: str) -> str:
        email = normalize_email(email)
        # Reject duplicates before paying for the hash; re-checked on insert.
        if email in self._users:
            raise UserExistsError(email)
        hashed = hash_password(password)
        with self._lock:
            if email in self._users:
                raise UserExistsError(email)
            self._users[email] = hashed
        logger.info("Registered user %s", email)
        return email

    def login(self, email: str, password: str) -> str:
        email = normalize_email(email)
        hashed = self._users.get(email)
        if hashed is None:
            raise UserNotFoundError(email)
        if not verify_password(password, hashed):
            raise InvalidCredentialsError()
        return email
