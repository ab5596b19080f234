"""
Authentication module for Statsor
Handles user accounts and the Flask-Login session wrapper
"""

import logging
from typing import Optional

from flask_login import UserMixin
from werkzeug.security import generate_password_hash

from .models import Identity, User
from .storage import Store

logger = logging.getLogger(__name__)

USERS_KEY = "users"


class UserSession(UserMixin):
    """User session class for Flask-Login"""
    def __init__(self, user: User):
        self.id = user.id
        self.username = user.username
        self.email = user.email
        self._user = user

    def identity(self) -> Identity:
        return self._user.identity()


class UserStore:
    """User accounts kept in the "users" collection"""

    def __init__(self, store: Store):
        self.store = store

    def load_users(self) -> list:
        return [u for u in self.store.load_list(USERS_KEY) if isinstance(u, dict)]

    def _find(self, field: str, value: str) -> Optional[User]:
        for user_data in self.load_users():
            if user_data.get(field) == value:
                try:
                    return User(**user_data)
                except (ValueError, TypeError) as e:
                    logger.warning(f"Skipping invalid user record: {e}")
                    continue
        return None

    def create_user(self, username: str, password: str, email: Optional[str] = None) -> Optional[User]:
        """Create a new user; returns None if the username is taken"""
        users = self.load_users()
        username = username.strip()
        for user_data in users:
            if user_data.get('username') == username:
                return None  # Username already exists

        user = User(
            username=username,
            password_hash=generate_password_hash(password),
            email=email
        )
        users.append(user.model_dump())
        self.store.save(USERS_KEY, users)
        return user

    def get_user_by_username(self, username: str) -> Optional[User]:
        """Get a user by username (case-sensitive exact match)"""
        if not username:
            return None
        return self._find('username', username.strip())

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        return self._find('id', user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        if not email:
            return None
        return self._find('email', email.strip().lower())
