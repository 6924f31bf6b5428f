"""Middleware for authentication and role checks."""
from functools import wraps
from flask import session, g, current_app
from sqlalchemy.exc import SQLAlchemyError

from punto_venta.database import get_session
from punto_venta.models import User, UserRole
from punto_venta.exceptions import AuthError, ForbiddenError


def load_current_user():
    """
    Load the current user into g (Flask's per-request global).

    Identity comes from the external provider, which stores ``user_id`` in
    the session. Sets g.user, g.user_id and g.user_role when authenticated.
    """
    g.user = None
    g.user_id = None
    g.user_role = None

    user_id = session.get('user_id')
    if not user_id:
        return

    try:
        user = get_session().query(User).filter_by(id=user_id, active=True).first()
    except SQLAlchemyError as e:
        current_app.logger.error(f"Error in load_current_user: {e}")
        return

    if user:
        g.user = user
        g.user_id = user.id
        g.user_role = user.role
    else:
        session.pop('user_id', None)


def require_login(f):
    """
    Decorator: Require user to be logged in.

    Raises AuthError (401) so API clients can redirect to the login screen.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('user') is None:
            raise AuthError()
        return f(*args, **kwargs)
    return decorated_function


def require_role(role=UserRole.ADMIN.value):
    """
    Decorator: Require the given role. Implies require_login.

    Sale registration and cash advances only need a login; inventory
    writes, exchange rate changes and cancellations need admin.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if g.get('user') is None:
                raise AuthError()
            if g.user_role != role:
                raise ForbiddenError()
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def current_cashier_name():
    """Display name stored on cash advance transactions."""
    user = g.get('user')
    return user.display_name if user else None
