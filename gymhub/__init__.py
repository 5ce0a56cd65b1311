import os
import logging
from datetime import timedelta
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from dotenv import load_dotenv

# Load environment variables (override=True ensures .env values take precedence)
load_dotenv(override=True)

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()


def _env_flag(name, default='0'):
    return os.environ.get(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


def create_app(config_name=None):
    """Application factory pattern."""
    app = Flask(__name__)

    # Configuration
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'dev-secret-key-change-me')
    app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL', 'sqlite:///gymhub.db')
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

    # Session configuration - staff stay signed in for a working day
    app.config['PERMANENT_SESSION_LIFETIME'] = timedelta(hours=12)
    app.config['SESSION_COOKIE_SECURE'] = os.environ.get('FLASK_ENV') == 'production'
    app.config['SESSION_COOKIE_HTTPONLY'] = True
    app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'

    # Admin password for simple staff auth
    app.config['ADMIN_PASSWORD'] = os.environ.get('ADMIN_PASSWORD', 'gym-admin-change-me')

    # Branding used in member messages
    app.config['APP_URL'] = os.environ.get('APP_URL', 'http://localhost:5000')
    app.config['GYM_NAME'] = os.environ.get('GYM_NAME', 'GymHub Fitness')
    app.config['CURRENCY_SYMBOL'] = os.environ.get('CURRENCY_SYMBOL', 'GH₵')

    # Notification gateways (Brevo email, Twilio SMS)
    app.config['BREVO_API_KEY'] = os.environ.get('BREVO_API_KEY')
    app.config['MAIL_SENDER_EMAIL'] = os.environ.get('MAIL_SENDER_EMAIL', 'noreply@gymhub.local')
    app.config['MAIL_SENDER_NAME'] = os.environ.get('MAIL_SENDER_NAME', app.config['GYM_NAME'])
    app.config['TWILIO_ACCOUNT_SID'] = os.environ.get('TWILIO_ACCOUNT_SID')
    app.config['TWILIO_AUTH_TOKEN'] = os.environ.get('TWILIO_AUTH_TOKEN')
    app.config['TWILIO_FROM_NUMBER'] = os.environ.get('TWILIO_FROM_NUMBER')
    app.config['NOTIFICATIONS_DRY_RUN'] = _env_flag('NOTIFICATIONS_DRY_RUN')

    if config_name == 'testing':
        app.config['TESTING'] = True
        app.config['SQLALCHEMY_DATABASE_URI'] = 'sqlite:///:memory:'
        app.config['ADMIN_PASSWORD'] = 'test-password'
        app.config['NOTIFICATIONS_DRY_RUN'] = True

    # Fix for postgres:// vs postgresql:// (some providers use older postgres:// format)
    if app.config['SQLALCHEMY_DATABASE_URI'].startswith('postgres://'):
        app.config['SQLALCHEMY_DATABASE_URI'] = app.config['SQLALCHEMY_DATABASE_URI'].replace(
            'postgres://', 'postgresql://', 1
        )

    configure_logging(app)

    # Initialize extensions with app
    db.init_app(app)
    migrate.init_app(app, db)

    # Register blueprints
    from gymhub.routes.main import main_bp
    from gymhub.routes.admin import admin_bp
    from gymhub.routes.api import api_bp
    app.register_blueprint(main_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(api_bp)

    # Import models so they're known to Flask-Migrate
    from gymhub import models

    from gymhub.cli import register_commands
    register_commands(app)

    return app


def configure_logging(app):
    """Set the root log level and mask member emails in production logs."""
    level = os.environ.get('LOG_LEVEL', 'DEBUG' if app.debug else 'INFO').upper()
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )
    if os.environ.get('FLASK_ENV') == 'production':
        from gymhub.logging_utils import EmailMaskingFilter
        for handler in logging.getLogger().handlers:
            handler.addFilter(EmailMaskingFilter())
