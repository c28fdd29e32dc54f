from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_wtf.csrf import CSRFProtect
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from config import Config

# App version: reported by /api/auth/me so the front end can detect upgrades.
APP_VERSION = '1.0.0'

# Create the database object here, but don't attach it to an app yet
db = SQLAlchemy()

# Migrate tracks schema changes and applies them incrementally
# (`flask db upgrade`) instead of recreating tables from scratch
migrate = Migrate()

# Login manager: handles session-based user authentication
login_manager = LoginManager()

# CSRF protection: JSON clients send the token from /api/auth/me
# back in the X-CSRFToken header on every mutating request.
csrf = CSRFProtect()

# Rate limiter: prevents brute-force attacks on login/register.
# Uses in-memory storage by default (sufficient for single-server deployment).
limiter = Limiter(key_func=get_remote_address, default_limits=[])


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Keep the field order of to_dict() in responses
    app.json.sort_keys = False
    app.logger.setLevel(app.config.get('LOG_LEVEL', 'INFO'))

    # Attach the database and migration engine to this app instance
    db.init_app(app)
    migrate.init_app(app, db)

    # Set up Flask-Login
    login_manager.init_app(app)

    # Set up CSRF protection
    csrf.init_app(app)

    # Set up rate limiting
    limiter.init_app(app)

    @login_manager.user_loader
    def load_user(user_id):
        from npc_graph.models import User
        return db.session.get(User, int(user_id))

    # An API has no login page to redirect to
    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Authentication required'}), 401

    from npc_graph.errors import register_error_handlers
    register_error_handlers(app)

    # Register Blueprints: each Blueprint is a group of related routes
    from npc_graph.routes.auth import auth_bp
    from npc_graph.routes.campaigns import campaigns_bp
    from npc_graph.routes.characters import characters_bp
    from npc_graph.routes.organisations import organisations_bp
    from npc_graph.routes.crews import crews_bp
    from npc_graph.routes.crew_relationships import crew_relationships_bp
    from npc_graph.routes.relationships import relationships_bp
    from npc_graph.routes.universal_relationships import universal_relationships_bp
    from npc_graph.routes.users import users_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(campaigns_bp)
    app.register_blueprint(characters_bp)
    app.register_blueprint(organisations_bp)
    app.register_blueprint(crews_bp)
    app.register_blueprint(crew_relationships_bp)
    app.register_blueprint(relationships_bp)
    app.register_blueprint(universal_relationships_bp)
    app.register_blueprint(users_bp)

    # CLI command: flask backfill-slugs
    # Gives every legacy campaign without a slug a unique one derived from its name.
    @app.cli.command('backfill-slugs')
    def backfill_slugs_command():
        """Generate slugs for campaigns that do not have one yet."""
        from npc_graph.slugs import backfill_slugs
        updated = backfill_slugs()
        for campaign in updated:
            print(f'  {campaign.name!r} -> {campaign.slug}')
        print(f'Backfilled {len(updated)} campaign slug(s).')

    # CLI command: flask seed-demo
    # Loads a small demo campaign. Safe to re-run; an existing demo is left alone.
    @app.cli.command('seed-demo')
    def seed_demo_command():
        """Load the demo campaign with characters, organisations and a crew."""
        from npc_graph.seed import seed_demo_campaign
        campaign, created = seed_demo_campaign()
        if created:
            print(f'Created demo campaign {campaign.name!r} ({campaign.slug}): '
                  f'{len(campaign.characters)} characters, '
                  f'{len(campaign.organisations)} organisations, '
                  f'{len(campaign.crews)} crew.')
        else:
            print(f'Demo campaign already exists ({campaign.slug}). Skipped.')

    return app
