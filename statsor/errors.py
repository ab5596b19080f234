"""
Error types for Statsor

Every error here is recoverable: the web layer turns them into rejected
commands with a JSON body, and the store degrades reads to empty collections.
"""

from typing import Any, Dict, Optional


class StatsorError(Exception):
    """Base class for errors surfaced to callers as rejected commands"""
    status_code = 400
    default_code = "STATSOR_ERROR"

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        body = {
            'success': False,
            'errors': [self.message],
            'error_code': self.error_code,
        }
        body.update(self.details)
        return body


class ValidationError(StatsorError):
    """Malformed input, e.g. an empty team name"""
    status_code = 400
    default_code = "VALIDATION_ERROR"


class NotFoundError(StatsorError):
    """Referenced team or match does not exist"""
    status_code = 404
    default_code = "NOT_FOUND"


class QuotaExceededError(StatsorError):
    """Plan limit reached for a resource kind"""
    status_code = 403
    default_code = "QUOTA_EXCEEDED"

    def __init__(self, kind: str, limit: int, current: int, tier: str):
        message = (
            f"Plan limit reached: {limit} {kind} on the '{tier}' plan. "
            "Upgrade your plan to create more."
        )
        super().__init__(message, details={
            'limit_reached': True,
            'resource': kind,
            'limit': limit,
            'current_count': current,
            'tier': tier,
        })
        self.kind = kind
        self.limit = limit
        self.current = current
        self.tier = tier


class StoreUnavailableError(StatsorError):
    """Persistence layer failed to write"""
    status_code = 503
    default_code = "STORE_UNAVAILABLE"
