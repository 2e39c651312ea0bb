# Overview: Request and permission decorators for API routes.

from functools import wraps

from flask import current_app, g, jsonify, request

from .permissions import get_role_permissions
from .services.tenant_service import get_tenant, require_staff
from .validation import NotFoundError, ValidationError, coerce_int


def _is_authenticated() -> bool:
    return hasattr(g, 'current_staff') and hasattr(g, 'tenant_id')


def require_auth(f):
    """
    Establish caller context from the upstream auth layer.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.tenant_id: Tenant every query in the request is scoped to
    - g.current_staff: The active Staff record making the call
    - g.permissions: Permission codes granted by the staff member's role,
      resolved once for the whole request

    Returns 401 when X-Tenant-Id / X-Staff-Id are missing or malformed, or
    when the staff member is inactive or belongs to another tenant.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw_tenant = request.headers.get("X-Tenant-Id")
        raw_staff = request.headers.get("X-Staff-Id")
        if not raw_tenant or not raw_staff:
            return jsonify({"error": "Authentication required"}), 401

        try:
            tenant = get_tenant(coerce_int(raw_tenant, "X-Tenant-Id"))
            staff = require_staff(tenant.id, coerce_int(raw_staff, "X-Staff-Id"))
        except (ValidationError, NotFoundError):
            return jsonify({"error": "Invalid caller context"}), 401

        g.tenant_id = tenant.id
        g.tenant = tenant
        g.current_staff = staff
        g.permissions = get_role_permissions(staff.role)

        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """Require a permission from the caller's role; must follow @require_auth."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if permission_code not in g.permissions:
                current_app.logger.info(
                    "Permission %s denied for staff %s (%s) on %s",
                    permission_code, g.current_staff.id, g.current_staff.role, request.path,
                )
                return jsonify({
                    "error": "Permission denied",
                    "code": "PERMISSION_DENIED",
                    "required_permission": permission_code,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
