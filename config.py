import os

class Config:
    # The secret key is used by Flask to sign session cookies; keep it secret in production.
    # In production (Docker), SECRET_KEY must be set as an environment variable.
    # Locally, a dev-only fallback is used so you don't need a .env file just to run the app.
    SECRET_KEY = os.environ.get('SECRET_KEY')
    if not SECRET_KEY and os.environ.get('FLASK_ENV') != 'development':
        import warnings
        warnings.warn('SECRET_KEY not set: using insecure default. Set SECRET_KEY env var in production!')
        SECRET_KEY = 'dev-secret-key-not-for-production'
    elif not SECRET_KEY:
        SECRET_KEY = 'dev-secret-key-not-for-production'

    # In Docker, DATABASE_URL points at Postgres or a mounted SQLite file.
    # Locally, falls back to the instance/ folder next to this file.
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(os.path.abspath(os.path.dirname(__file__)), 'instance', 'npc_graph.db')

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Session cookie security
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    REMEMBER_COOKIE_HTTPONLY = True
    REMEMBER_COOKIE_SAMESITE = 'Lax'

    # JSON clients send the token from /api/auth/me back as X-CSRFToken
    WTF_CSRF_HEADERS = ['X-CSRFToken', 'X-CSRF-Token']
    WTF_CSRF_TIME_LIMIT = None

    # Self-registration. The very first account is always allowed (it becomes admin).
    ALLOW_SIGNUP = os.environ.get('ALLOW_SIGNUP', 'true').lower() == 'true'

    # Level for app.logger: unexpected store errors are logged here, never sent to clients
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    WTF_CSRF_ENABLED = False
    RATELIMIT_ENABLED = False
    ALLOW_SIGNUP = True
