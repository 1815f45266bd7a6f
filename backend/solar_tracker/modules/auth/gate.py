"""
Auth Gate - credential checks, token issue/verification and the user
directory that layers static users over the user file.
"""

from typing import Any, Dict, List, Optional

from solar_tracker.core.config import Settings
from solar_tracker.core.exceptions import (
    InvalidTokenError,
    UsernameTakenError,
)
from solar_tracker.core.logging_config import logger
from solar_tracker.core.security import (
    create_access_token,
    decode_token,
    get_password_hash,
    verify_password,
)
from solar_tracker.modules.auth.identity import UserIdentity
from solar_tracker.modules.auth.users import StaticUserProvider, StoredUser, UserFileStore


class AuthGate:
    """
    Args:
        config: Settings carrying the JWT secret, lifetime and bcrypt cost.
        static_users: Provider built from configuration at startup.
        user_store: File-backed store for runtime-created users.
    """

    def __init__(self, config: Settings, static_users: StaticUserProvider, user_store: UserFileStore):
        self.config = config
        self.static_users = static_users
        self.user_store = user_store

    async def find_user(self, username: str) -> Optional[StoredUser]:
        """Static users shadow file users of the same (case-insensitive) name"""
        static_user = self.static_users.get(username)
        if static_user:
            return static_user
        return await self.user_store.find(username)

    async def verify_credentials(self, username: str, password: str) -> Optional[UserIdentity]:
        user = await self.find_user(username)
        if not user:
            return None
        if not verify_password(password, user.password_hash):
            return None
        return UserIdentity(id=user.id, username=user.username)

    async def create_user(self, username: str, password: str) -> UserIdentity:
        if await self.find_user(username):
            raise UsernameTakenError(username)

        password_hash = get_password_hash(password, rounds=self.config.BCRYPT_ROUNDS)
        user = await self.user_store.append(username, password_hash)
        logger.info(f"Created user {user.username}", extra={"event_type": "user_created"})
        return UserIdentity(id=user.id, username=user.username)

    async def list_users(self) -> List[Dict[str, Any]]:
        file_users = await self.user_store.read()
        return [user.to_public_dict() for user in self.static_users.all()] + \
            [user.to_public_dict() for user in file_users]

    def issue_token(self, identity: UserIdentity) -> str:
        return create_access_token(
            identity.to_dict(),
            secret=self.config.JWT_SECRET,
            expires_delta=self.config.JWT_EXPIRES_DELTA,
            algorithm=self.config.JWT_ALGORITHM,
        )

    def authenticate(self, token: str) -> UserIdentity:
        payload = decode_token(token, self.config.JWT_SECRET, algorithm=self.config.JWT_ALGORITHM)

        user_id = payload.get("id")
        username = payload.get("username")
        if not isinstance(user_id, str) or not isinstance(username, str):
            raise InvalidTokenError()

        return UserIdentity(id=user_id, username=username)
