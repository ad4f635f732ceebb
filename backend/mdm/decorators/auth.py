from functools import wraps
from flask import abort, current_app, request
from flask_jwt_extended import verify_jwt_in_request
from mdm.services.policy import has_permissions, missing_permissions


def require_permissions(*codes: str):
    """Verify the bearer token and require every permission code.

    A MANAGE grant satisfies the READ code of the same service.
    """
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            if not has_permissions(*codes):
                current_app.logger.info('Permission denied on %s %s: missing %s',
                                        request.method, request.path, ','.join(missing_permissions(*codes)))
                abort(403, description='Missing permission')
            return fn(*args, **kwargs)
        return wrapper
    return outer
