from functools import wraps

from flask import current_app, redirect, session, url_for
from werkzeug.security import check_password_hash, generate_password_hash

from errors import AuthorizationError, InvalidCredentials

ADMIN = 'admin'
USER = 'user'


# ---------------------- Passwords ----------------------
def hash_password(password: str) -> str:
    return generate_password_hash(password, method='scrypt', salt_length=16)


def verify_password(password: str, password_hash: str) -> bool:
    return check_password_hash(password_hash, password)


def authenticate(store, email: str, password: str) -> dict:
    """Return the session identity for valid credentials.

    Unknown email and wrong password raise the same InvalidCredentials so the
    response does not reveal which one failed.
    """
    user = store.find_user_by_email(email)
    if not user or not verify_password(password, user.password_hash):
        raise InvalidCredentials('Invalid credentials.')
    return {'id': user.id, 'name': user.name, 'email': user.email, 'is_admin': bool(user.is_admin)}


# ---------------------- Session ----------------------
def login_user(identity: dict):
    session.clear()
    session['user'] = identity
    session.permanent = True
    # new session id so one planted before login cannot be reused
    current_app.session_interface.regenerate(session)


def logout_user():
    session.clear()


def current_user():
    return session.get('user')


def role_of(identity):
    if not identity:
        return None
    return ADMIN if identity.get('is_admin') else USER


def home_for(identity):
    role = role_of(identity)
    if role == ADMIN:
        return url_for('tracker.admin_dashboard')
    if role == USER:
        return url_for('tracker.dashboard')
    return url_for('tracker.login')


def check_role(identity, role):
    """Raise AuthorizationError unless ``identity`` may act as ``role``."""
    if role_of(identity) != role:
        raise AuthorizationError()


def role_required(role):
    """Guard a view. Anonymous callers and non-admins on admin routes go to
    the login page; admins on user routes go to their own dashboard."""
    def decorator(view_func):
        @wraps(view_func)
        def wrapped(*args, **kwargs):
            identity = current_user()
            try:
                check_role(identity, role)
            except AuthorizationError:
                if role_of(identity) == ADMIN:
                    return redirect(url_for('tracker.admin_dashboard'))
                return redirect(url_for('tracker.login'))
            return view_func(*args, **kwargs)
        return wrapped
    return decorator
