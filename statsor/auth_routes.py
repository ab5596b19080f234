"""
Authentication routes for Statsor
"""

from flask import Blueprint, request, jsonify, session, current_app
from flask_login import login_user, logout_user, login_required, current_user
from werkzeug.security import check_password_hash, generate_password_hash
import re
import time

from .auth import UserSession
from .errors import StoreUnavailableError
from .extensions import get_services, limiter

# Security: Pre-generated dummy password hash for constant-time checking
# This prevents timing attacks by always performing a hash check
DUMMY_PASSWORD_HASH = generate_password_hash("dummy-password-for-timing-protection")

EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'

# Create blueprint
auth_bp = Blueprint('auth', __name__)


def _start_session(user) -> None:
    # Security: Prevent session fixation by clearing session before login
    session.clear()
    session.permanent = True
    login_user(UserSession(user), remember=True)


@auth_bp.route('/login', methods=['POST'])
@limiter.limit("10 per minute")
def login():
    data = request.get_json(silent=True) or {}

    username = str(data.get('username', '')).strip()
    password = str(data.get('password', ''))

    if not username or not password:
        return jsonify({'success': False, 'errors': ['Username and password are required']}), 400

    users = get_services().users
    user = users.get_user_by_username(username)

    # Security: Always perform a hash check, even if user doesn't exist
    password_hash_to_check = user.password_hash if user and user.password_hash else DUMMY_PASSWORD_HASH
    try:
        password_valid = check_password_hash(password_hash_to_check, password)
    except ValueError as e:
        current_app.logger.error(f"Password hash validation error for user {username}: {e}", exc_info=True)
        password_valid = False

    if not user or not password_valid:
        # Add small delay to prevent timing-based enumeration
        time.sleep(0.1)
        current_app.logger.info(f"Failed login attempt for username: {username}")
        return jsonify({'success': False, 'errors': ['Invalid username or password']}), 401

    _start_session(user)
    return jsonify({'success': True, 'user_id': str(user.id)})


@auth_bp.route('/register', methods=['POST'])
@limiter.limit("5 per minute")
def register():
    data = request.get_json(silent=True) or {}

    username = str(data.get('username', '')).strip()
    password = str(data.get('password', ''))
    email_value = str(data.get('email', '')).strip()
    email = email_value.lower() if email_value else None

    # Validate inputs
    if not username or not password:
        return jsonify({'success': False, 'errors': ['Username and password are required']}), 400
    if not email:
        return jsonify({'success': False, 'errors': ['Email address is required']}), 400
    if not re.match(EMAIL_PATTERN, email):
        return jsonify({'success': False, 'errors': ['Please enter a valid email address']}), 400
    if len(password) < 8:
        return jsonify({'success': False, 'errors': ['Password must be at least 8 characters']}), 400
    if len(username) < 3 or ' ' in username:
        return jsonify({'success': False, 'errors': ['Username must be at least 3 characters with no spaces']}), 400

    services = get_services()
    if services.users.get_user_by_email(email):
        return jsonify({'success': False, 'errors': ['An account with this email address already exists']}), 409

    try:
        user = services.users.create_user(username, password, email)
    except StoreUnavailableError as e:
        current_app.logger.error(f"Error creating user {username}: {e}", exc_info=True)
        return jsonify({'success': False, 'errors': ['An error occurred during registration. Please try again.']}), 503
    if user is None:
        return jsonify({'success': False, 'errors': ['Username already exists']}), 409

    current_app.logger.info(f"NEW USER REGISTRATION: username={username}, user_id={user.id}")

    # Every account starts on the default tier; the summary creates the
    # record lazily if this write fails
    try:
        services.policy.initialize_subscription(user.identity())
    except StoreUnavailableError as e:
        current_app.logger.warning(f"Could not initialize subscription for user {user.id}: {e}")

    _start_session(user)
    return jsonify({'success': True, 'user_id': str(user.id)}), 201


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    """Logout"""
    logout_user()
    return jsonify({'success': True})


@auth_bp.route('/api/me')
@login_required
def me():
    return jsonify({
        'success': True,
        'user': {
            'id': current_user.id,
            'username': current_user.username,
            'email': current_user.email,
        }
    })
