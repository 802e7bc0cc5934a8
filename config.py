"""
Application Configuration

Centralizes all Flask and database configuration settings.

Environment variables are read from the process, then from .env and
.env.local in the project directory.
"""

import os

from dotenv import load_dotenv

# Base directory of the application
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

load_dotenv(os.path.join(BASE_DIR, '.env'))
load_dotenv(os.path.join(BASE_DIR, '.env.local'))

DEFAULT_SQLITE_URL = 'sqlite:///' + os.path.join(BASE_DIR, 'sqlite.db')


class Config:
    """Base configuration class."""

    # Flask settings
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-only-change-in-production')

    # Embedded (development) and relational (production) databases
    EMBEDDED_DATABASE_URI = os.environ.get('SQLITE_DATABASE_URL', DEFAULT_SQLITE_URL)
    RELATIONAL_DATABASE_URI = os.environ.get('DATABASE_URL')

    # SQLAlchemy settings
    SQLALCHEMY_DATABASE_URI = RELATIONAL_DATABASE_URI or EMBEDDED_DATABASE_URI
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Day settings migration
    DAY_SETTINGS_BACKUP_TABLE = os.environ.get('DAY_SETTINGS_BACKUP_TABLE', 'weekly_day_settings_backup')
    WEEK_STARTS_ON = int(os.environ.get('WEEK_STARTS_ON', 0))  # 0 = Monday


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = Config.EMBEDDED_DATABASE_URI


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    EMBEDDED_DATABASE_URI = 'sqlite:///:memory:'
    RELATIONAL_DATABASE_URI = None
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'


# Configuration dictionary for easy access
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config(env=None):
    """Get configuration based on environment."""
    if env is None:
        env = os.environ.get('FLASK_ENV', 'development')
    return config.get(env, config['default'])
