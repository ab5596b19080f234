"""
Subscription routes for Statsor
"""

from flask import Blueprint, request, jsonify, current_app
from flask_login import login_required

from .config import PLAN_PRICING
from .errors import NotFoundError, ValidationError
from .extensions import current_identity, get_services, is_admin_user

# Create blueprint
subscription_bp = Blueprint('subscription', __name__)


@subscription_bp.route('/api/subscription/summary')
@login_required
def get_subscription_summary():
    """Plan tier, limits and current usage for the logged-in user"""
    summary = get_services().policy.get_subscription_summary(current_identity())
    return jsonify({'success': True, 'subscription': summary.model_dump()})


@subscription_bp.route('/api/subscription/can-create')
@login_required
def can_create():
    resource = request.args.get('resource', '').strip()
    if not resource:
        raise ValidationError("Resource is required")
    allowed = get_services().policy.can_create_resource(current_identity(), resource)
    return jsonify({'success': True, 'resource': resource, 'allowed': allowed})


@subscription_bp.route('/api/subscription/plans')
def get_plans():
    """Available plan tiers with their limits"""
    policy = get_services().policy
    plans = []
    for tier, limits in policy.plan_limits.items():
        plan = {'id': tier, 'limits': limits}
        plan.update(PLAN_PRICING.get(tier, {'name': tier.title()}))
        plans.append(plan)
    return jsonify({'success': True, 'plans': plans, 'default_tier': policy.default_tier})


@subscription_bp.route('/api/admin/subscriptions/<user_id>/plan', methods=['POST'])
@login_required
def change_user_plan(user_id):
    """Move a user to another plan tier (admin only)"""
    if not is_admin_user():
        return jsonify({'success': False, 'errors': ['Admin access required']}), 403

    data = request.get_json(silent=True) or {}
    tier = str(data.get('tier', '')).strip()
    if not tier:
        raise ValidationError("Tier is required")

    services = get_services()
    user = services.users.get_user_by_id(user_id)
    if not user:
        raise NotFoundError("User not found")

    record = services.policy.change_plan(user.identity(), tier)
    current_app.logger.info(f"Admin changed plan for user {user_id} to '{tier}'")
    return jsonify({'success': True, 'subscription': services.policy.get_subscription_summary(user.identity()).model_dump(),
                    'updated_at': record.updated_at})
