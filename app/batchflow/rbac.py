from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import abort, g

from app.batchflow.models import User


def current_user() -> User:
    """The authenticated user for this request. Only valid behind require_login/require_role."""
    user: User | None = getattr(g, "current_user", None)
    if user is None:
        abort(401)
    return user


def user_has_role(user: User | None, *roles: str) -> bool:
    if not user or not user.is_active:
        return False
    return user.role in roles


def require_login(fn: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        user: User | None = getattr(g, "current_user", None)
        if not user or not user.is_active:
            abort(401)
        return fn(*args, **kwargs)

    return wrapped


def require_role(*roles: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user: User | None = getattr(g, "current_user", None)
            # Unauthenticated → 401
            if not user or not user.is_active:
                abort(401)
            # Authenticated but wrong role → 403
            if not user_has_role(user, *roles):
                g.missing_role = " or ".join(roles)
                abort(403)
            return fn(*args, **kwargs)

        return wrapped

    return decorator
