# Overview: Request decorators that establish identity and enforce permissions on routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .errors import Unauthorized
from .identity import resolve_identity
from .permissions import Permission


def _is_authenticated() -> bool:
    return hasattr(g, "identity") and bool(getattr(g, "org_id", None))


def require_auth(f):
    """
    Require a resolved identity and establish tenant context.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.identity: The resolved Identity
    - g.user_id: The caller's user id
    - g.org_id: The organization id (tenant context) - REQUIRED

    Returns 401 when the user or organization headers are missing.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            identity = resolve_identity(request.headers, current_app.config)
        except Unauthorized as e:
            return jsonify(e.to_dict()), e.status_code

        g.identity = identity
        g.user_id = identity.user_id
        g.org_id = identity.org_id

        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission: Permission):
    """
    Require a specific permission. Must be stacked below @require_auth.

    Denials are logged with the tenant and path for auditing.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if not g.identity.has(permission):
                current_app.logger.warning(
                    "permission denied: user=%s org=%s permission=%s path=%s",
                    g.user_id,
                    g.org_id,
                    permission.value,
                    request.path,
                )
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": permission.value,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
