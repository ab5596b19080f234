#!/usr/bin/env python3
"""
Script to create the admin user and optionally move a user to another plan

Usage:
    python create_admin_user.py <username> <email> <password>
    python create_admin_user.py --plan <username> <tier>
"""
import sys

from statsor import config
from statsor.auth import UserStore
from statsor.dashboard import register_collection_usage
from statsor.storage import JsonFileStore
from statsor.subscriptions import SubscriptionPolicy


def _services():
    store = JsonFileStore(config.DATA_DIR)
    policy = SubscriptionPolicy(store)
    register_collection_usage(policy, store)
    return UserStore(store), policy


def create_admin_user(username, email, password):
    """Create the admin user on the top tier"""
    users, policy = _services()

    if users.get_user_by_username(username):
        print(f"✗ User '{username}' already exists")
        return False

    user = users.create_user(username, password, email=email.strip().lower())
    if not user:
        print("✗ Failed to create admin user")
        return False

    top_tier = list(policy.plan_limits)[-1]
    policy.initialize_subscription(user.identity(), tier=top_tier)
    print(f"✓ Admin user '{username}' created (ID: {user.id}, plan: {top_tier})")
    print(f"  Set ADMIN_USERNAME={username} in your .env file to enable admin routes")
    return True


def change_plan(username, tier):
    users, policy = _services()
    user = users.get_user_by_username(username)
    if not user:
        print(f"✗ User '{username}' not found")
        return False

    policy.change_plan(user.identity(), tier)
    summary = policy.get_subscription_summary(user.identity())
    print(f"✓ '{username}' is now on '{summary.tier}'")
    for kind, limit in summary.limits.items():
        used = summary.usage.get(policy.counter_for(kind), 0)
        shown = 'unlimited' if limit == config.UNLIMITED else limit
        print(f"  {kind}: {used} / {shown}")
    return True


if __name__ == "__main__":
    args = sys.argv[1:]
    if len(args) == 3 and args[0] == '--plan':
        ok = change_plan(args[1], args[2])
    elif len(args) == 3:
        ok = create_admin_user(*args)
    else:
        print(__doc__)
        sys.exit(2)
    sys.exit(0 if ok else 1)
