"""
Statsor - Flask Application
"""

from flask import Flask, request, jsonify
import os
import sys
from datetime import timedelta

from dotenv import load_dotenv

from . import config
from .auth import UserStore, UserSession
from .dashboard import register_collection_usage
from .errors import StatsorError
from .extensions import Services, get_services, limiter, login_manager
from .storage import JsonFileStore
from .subscriptions import SubscriptionPolicy

# Load environment variables from .env file
load_dotenv()


def create_app(test_config=None):
    """Create and configure the Flask application"""
    app = Flask(__name__)

    app.config.update(
        SECRET_KEY=os.environ.get('SECRET_KEY', '').strip(),
        DATA_DIR=config.DATA_DIR,
        PLAN_LIMITS=None,
        DEFAULT_TIER=config.DEFAULT_TIER,
        ADMIN_USERNAME=os.environ.get('ADMIN_USERNAME', '').strip(),
        RATELIMIT_ENABLED=os.environ.get('RATELIMIT_ENABLED', 'true').lower() in ('true', '1', 'on'),
        SESSION_COOKIE_HTTPONLY=True,
        # Only set Secure=True in production (HTTPS required)
        SESSION_COOKIE_SECURE=os.environ.get('FLASK_ENV') == 'production',
        SESSION_COOKIE_SAMESITE='Lax',
        PERMANENT_SESSION_LIFETIME=timedelta(days=7),
    )
    if test_config:
        app.config.update(test_config)

    # SECRET_KEY must be set - no default fallback
    secret_key = app.config['SECRET_KEY']
    if not secret_key:
        raise RuntimeError(
            "SECRET_KEY environment variable must be set. "
            "Generate a secure key with: python -c 'import secrets; print(secrets.token_hex(32))'"
        )
    if len(secret_key) < 32:
        raise RuntimeError(
            f"SECRET_KEY must be at least 32 characters. Current length: {len(secret_key)}."
        )

    # Services
    store = JsonFileStore(app.config['DATA_DIR'])
    plan_limits = app.config['PLAN_LIMITS'] or config.load_plan_limits()
    policy = SubscriptionPolicy(store, plan_limits=plan_limits, default_tier=app.config['DEFAULT_TIER'])
    register_collection_usage(policy, store)
    users = UserStore(store)
    app.extensions['statsor'] = Services(store, policy, users)
    app.logger.info(f"Using data directory {store.data_dir}")

    # Initialize Flask-Login
    login_manager.init_app(app)
    login_manager.session_protection = 'basic'

    @login_manager.user_loader
    def load_user(user_id):
        user = get_services().users.get_user_by_id(user_id)
        if user:
            return UserSession(user)
        return None

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'success': False, 'errors': ['Please log in to access this page.']}), 401

    # Security: Initialize rate limiting
    limiter.init_app(app)

    # Register blueprints
    from .routes import bp
    from .auth_routes import auth_bp
    from .subscription_routes import subscription_bp
    app.register_blueprint(bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(subscription_bp)

    # Production: Health check endpoint
    @app.route('/health', methods=['GET'])
    def health_check():
        """Health check endpoint for load balancers and monitoring"""
        return jsonify({
            'status': 'healthy',
            'service': 'Statsor'
        }), 200

    @app.errorhandler(StatsorError)
    def handle_statsor_error(e):
        """Rejected commands: validation, quota, missing records, store failures"""
        if e.status_code >= 500:
            app.logger.error(f"{e.error_code} on {request.path}: {e.message}")
        return jsonify(e.to_dict()), e.status_code

    # Add error handler for API routes to return JSON instead of HTML
    @app.errorhandler(500)
    def handle_500_error(e):
        """Return JSON for API errors - sanitized to prevent information leakage"""
        if request.path.startswith('/api/'):
            # Log full error details server-side for debugging
            app.logger.error(f"500 error on {request.path}: {e}", exc_info=True)
            return jsonify({
                'success': False,
                'errors': ['An internal error occurred. Please try again later.']
            }), 500
        return e

    @app.errorhandler(404)
    def handle_404_error(e):
        """Return JSON for API 404 errors"""
        if request.path.startswith('/api/'):
            return jsonify({
                'success': False,
                'errors': ['Endpoint not found']
            }), 404
        return e

    @app.errorhandler(429)
    def handle_429_error(e):
        return jsonify({
            'success': False,
            'errors': ['Too many requests. Please try again later.']
        }), 429

    return app


def main():
    """Main entry point - Development only"""
    # Security: Prevent running Flask dev server in production
    flask_env = os.environ.get('FLASK_ENV', '').strip().lower()
    if flask_env == 'production':
        print("ERROR: Flask development server cannot run in production mode.")
        print("Use gunicorn or another production WSGI server instead:")
        print("  gunicorn -c gunicorn.conf.py wsgi:app")
        sys.exit(1)

    config.configure_logging()
    app = create_app()

    print("Statsor starting in DEVELOPMENT mode...")
    print("Serving at http://127.0.0.1:8080")
    print("Press Ctrl+C to stop the application")

    try:
        app.run(host='127.0.0.1', port=8080, debug=False)
    except KeyboardInterrupt:
        print("\nShutting down Statsor...")


if __name__ == '__main__':
    main()
