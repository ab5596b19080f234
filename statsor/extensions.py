"""
Shared Flask extensions and per-app service lookup
"""

from flask import current_app
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_login import LoginManager, current_user

from .auth import UserStore
from .dashboard import DashboardController
from .models import Identity
from .storage import Store
from .subscriptions import SubscriptionPolicy

login_manager = LoginManager()

# Rate limits are applied per route; storage is in-process
limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")


class Services:
    """Store-backed services shared by every request of one app"""

    def __init__(self, store: Store, policy: SubscriptionPolicy, users: UserStore):
        self.store = store
        self.policy = policy
        self.users = users

    def dashboard_for(self, identity: Identity) -> DashboardController:
        return DashboardController(self.store, self.policy, identity).load()


def get_services() -> Services:
    return current_app.extensions['statsor']


def current_identity() -> Identity:
    """
    Identity of the logged-in user.
    SECURITY: Never trust a client-provided user id. Always use current_user.
    """
    if not current_user.is_authenticated:
        raise ValueError("User is not authenticated")
    return current_user.identity()


def is_admin_user() -> bool:
    admin_username = current_app.config.get('ADMIN_USERNAME', '').strip()
    if not admin_username:
        return False
    return current_user.is_authenticated and current_user.username == admin_username
