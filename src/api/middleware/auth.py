"""
Bikepark Reports - Authentication Middleware

Two layers:
- X-API-Key: shared secret between the front-end application and this service
- Authorization context: the front-end forwards what the signed-in user may
  see and do, in X-Accessible-Bikeparks (comma-separated StallingsIDs) and
  X-User-Rights (comma-separated rights, e.g. "rapportages,admin")

Report endpoints need the 'rapportages' right and only accept facilities from
the accessible list. Cache administration needs the 'admin' right.
"""

from dataclasses import dataclass, field
from functools import wraps
from typing import FrozenSet, Optional, Tuple

from flask import g, jsonify, request

from utils.config import API_KEYS
from utils.logger import logger

RIGHT_REPORTS = 'rapportages'
RIGHT_ADMIN = 'admin'

ACCESSIBLE_BIKEPARKS_HEADER = 'X-Accessible-Bikeparks'
USER_RIGHTS_HEADER = 'X-User-Rights'


def _split_header(value: Optional[str]) -> Tuple[str, ...]:
    if value is None:
        return ()
    return tuple(item.strip() for item in value.split(',') if item.strip())


@dataclass(frozen=True)
class AuthorizationContext:
    """
    What the caller may do.

    accessible_bikeparks is None when the caller is not restricted to a
    facility list (admins without the header, or development mode).
    """
    rights: FrozenSet[str] = field(default_factory=frozenset)
    accessible_bikeparks: Optional[FrozenSet[str]] = None

    def has_right(self, right: str) -> bool:
        return right in self.rights

    @classmethod
    def from_headers(cls, headers, auth_enabled: bool = True) -> 'AuthorizationContext':
        """
        Build the context from forwarded headers.

        Without authentication (no API keys configured) a request without a
        rights header gets every right.
        """
        rights_header = headers.get(USER_RIGHTS_HEADER)
        if rights_header is None and not auth_enabled:
            rights = frozenset((RIGHT_REPORTS, RIGHT_ADMIN))
        else:
            rights = frozenset(_split_header(rights_header))

        bikeparks_header = headers.get(ACCESSIBLE_BIKEPARKS_HEADER)
        if bikeparks_header is not None:
            accessible = frozenset(_split_header(bikeparks_header))
        elif RIGHT_ADMIN in rights or not auth_enabled:
            accessible = None
        else:
            accessible = frozenset()

        return cls(rights=rights, accessible_bikeparks=accessible)


class APIKeyAuth:
    """
    API key authentication middleware.

    Validates X-API-Key header against configured API keys.
    For production: Store API keys in AWS SSM Parameter Store.
    For local: Store in .env file as comma-separated list.
    """

    def __init__(self, api_keys=None):
        self.valid_api_keys = set(API_KEYS if api_keys is None else api_keys)

        if not self.valid_api_keys:
            logger.warning("No API keys configured - authentication disabled")

    @property
    def enabled(self) -> bool:
        return bool(self.valid_api_keys)

    def _check_api_key(self):
        """Returns an error response, or None when the key is fine."""
        if not self.enabled:
            logger.debug("API key authentication skipped (no keys configured)")
            return None

        api_key = request.headers.get('X-API-Key')

        if not api_key:
            logger.warning("Missing X-API-Key header", extra={
                "path": request.path,
                "remote_addr": request.remote_addr
            })
            return jsonify({
                "error": "Unauthorized",
                "message": "Missing X-API-Key header"
            }), 401

        if api_key not in self.valid_api_keys:
            logger.warning("Invalid API key", extra={
                "path": request.path,
                "remote_addr": request.remote_addr,
                "api_key_prefix": api_key[:8] if len(api_key) >= 8 else "***"
            })
            return jsonify({
                "error": "Unauthorized",
                "message": "Invalid API key"
            }), 401

        return None

    def require_api_key(self, f):
        """
        Decorator to require valid API key.

        Usage:
            @bp.route('/protected')
            @api_key_auth.require_api_key
            def protected_endpoint():
                return jsonify({"data": "secret"})
        """
        @wraps(f)
        def decorated_function(*args, **kwargs):
            error = self._check_api_key()
            if error is not None:
                return error
            return f(*args, **kwargs)

        return decorated_function

    def require_right(self, right: str):
        """
        Decorator: valid API key plus the given user right.

        The parsed AuthorizationContext is available as flask.g.auth.
        """
        def decorator(f):
            @wraps(f)
            def decorated_function(*args, **kwargs):
                context = AuthorizationContext.from_headers(request.headers, auth_enabled=self.enabled)
                if not context.has_right(right):
                    logger.warning("Missing user right", extra={
                        "path": request.path,
                        "required_right": right
                    })
                    return jsonify({
                        "error": "Forbidden",
                        "message": f"The '{right}' right is required"
                    }), 403

                g.auth = context
                return f(*args, **kwargs)

            return self.require_api_key(decorated_function)
        return decorator


# Global instance
api_key_auth = APIKeyAuth()
