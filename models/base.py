"""
Database Base Module

Creates the SQLAlchemy instance shared by the ORM models, the Alembic
migrations and the day settings storage backends (which borrow its engine).
Kept in its own module to avoid circular imports.
"""

from flask_sqlalchemy import SQLAlchemy

# Bound to an app by create_app() in app.py
db = SQLAlchemy()
