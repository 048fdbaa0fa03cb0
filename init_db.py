"""
Initialize database tables.
Run this on first deploy instead of flask db upgrade.

Set RESET_DB=1 environment variable to drop and recreate all tables.
"""
import os

from scan2study import create_app, db


def init_db():
    """Create all database tables."""
    app = create_app(os.getenv('FLASK_ENV', 'production'))

    with app.app_context():
        # create_app already handles RESET_DB; this covers an existing, partial schema
        app.logger.info("Creating database tables...")
        db.create_all()
        app.logger.info("Database tables created")


if __name__ == '__main__':
    init_db()
