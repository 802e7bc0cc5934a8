import os

from flask import Flask
from flask_migrate import Migrate

from config import get_config
from models import db

migrate = Migrate()


def create_app(config_name=None, **overrides):
    """
    Build the Flask application.

    Args:
        config_name: 'development', 'production' or 'testing' (defaults to FLASK_ENV)
        **overrides: config keys to set after the config class is applied,
            e.g. SQLALCHEMY_DATABASE_URI for a specific backend
    """
    app = Flask(__name__)
    app.config.from_object(get_config(config_name))
    app.config.update(overrides)

    db.init_app(app)
    migrate.init_app(app, db, directory=os.path.join(os.path.dirname(os.path.abspath(__file__)), 'migrations'))
    return app


# ============================================
# INITIALIZE DATABASE
# ============================================

def init_db(app):
    """Create missing tables for a fresh install."""
    with app.app_context():
        db.create_all()
