from flask import Blueprint, current_app, jsonify, session
from flask_login import login_user, logout_user
from flask_wtf.csrf import generate_csrf

from npc_graph import APP_VERSION, db, limiter
from npc_graph.errors import PermissionDenied, ValidationError
from npc_graph.helpers import get_json_body
from npc_graph.models import User
from npc_graph.permissions import get_current_user

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')

MIN_PASSWORD_LENGTH = 8


def _clean_email(value):
    return value.strip().lower() if isinstance(value, str) else ''


@auth_bp.route('/register', methods=['POST'])
@limiter.limit("5 per minute", methods=["POST"])
def register():
    """Create an account and log it in. The very first account becomes admin."""
    first_user = User.query.count() == 0
    # Signup can be closed, but never before the first admin exists
    if not first_user and not current_app.config.get('ALLOW_SIGNUP', True):
        raise PermissionDenied('Registration is currently closed')

    data = get_json_body()
    email = _clean_email(data.get('email'))
    password = data.get('password') if isinstance(data.get('password'), str) else ''
    name = data.get('name').strip() if isinstance(data.get('name'), str) else None

    if not email or '@' not in email:
        raise ValidationError('A valid email is required')
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')
    if User.query.filter_by(email=email).first():
        raise ValidationError('That email is already registered')

    user = User(email=email, name=name or None, role='admin' if first_user else 'editor')
    user.set_password(password)
    db.session.add(user)
    db.session.commit()

    login_user(user)
    current_app.logger.info(f'User {user.id} registered as {user.role}')
    return jsonify(user.to_dict()), 201


@auth_bp.route('/login', methods=['POST'])
@limiter.limit("5 per minute", methods=["POST"])
def login():
    data = get_json_body()
    email = _clean_email(data.get('email'))
    password = data.get('password') if isinstance(data.get('password'), str) else ''

    user = User.query.filter_by(email=email).first() if email else None
    if user is None or not user.check_password(password):
        current_app.logger.warning(f'Failed login for "{email}"')
        return jsonify({'error': 'Invalid email or password'}), 401

    login_user(user, remember=bool(data.get('remember')))
    return jsonify(user.to_dict())


@auth_bp.route('/logout', methods=['POST'])
def logout():
    logout_user()
    session.clear()
    return jsonify({'success': True})


@auth_bp.route('/me', methods=['GET'])
def me():
    """Current user (or null) plus the CSRF token to send back as X-CSRFToken."""
    user = get_current_user()
    return jsonify({
        'user': user.to_dict() if user else None,
        'csrfToken': generate_csrf(),
        'version': APP_VERSION,
    })
