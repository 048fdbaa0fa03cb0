"""
Scan2Study Application Factory
"""
import logging
import os
from datetime import datetime, timezone
from flask import Flask, jsonify, request
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_wtf.csrf import CSRFProtect
from config import config

db = SQLAlchemy()
migrate = Migrate()
csrf = CSRFProtect()


def create_app(config_name='default'):
    app = Flask(__name__)
    app.config.from_object(config[config_name])

    app.logger.setLevel(getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)

    # Register blueprints
    from scan2study.api import api_bp
    from scan2study.views import pages_bp
    from scan2study.study import render_markdown

    app.register_blueprint(api_bp)
    app.register_blueprint(pages_bp)

    # Exempt API routes from CSRF (called by fetch and scripts)
    csrf.exempt(api_bp)

    app.jinja_env.filters['markdown'] = render_markdown

    @app.errorhandler(413)
    def too_large(e):
        if request.path.startswith('/api/'):
            return jsonify({"error": "Upload is too large."}), 413
        return e

    @app.route('/healthz')
    def healthz():
        """Health check for load balancers and monitoring"""
        from scan2study.services.llm_service import client_ready
        from scan2study.services.ocr_service import ocr_ready

        try:
            from sqlalchemy import text
            db.session.execute(text('SELECT 1'))
            db_status = "ok"
        except Exception as e:
            db_status = f"error: {e}"

        ocr_ok, ocr_msg = ocr_ready()
        llm_ok, llm_msg = client_ready()
        return jsonify({
            "status": "ok" if db_status == "ok" else "degraded",
            "version": app.config['APP_VERSION'],
            "database": db_status,
            "ocr_ready": ocr_ok,
            "ocr_message": ocr_msg,
            "llm_ready": llm_ok,
            "llm_message": llm_msg,
            "timestamp": datetime.now(timezone.utc).isoformat()
        })

    @app.route('/version')
    def version():
        """Version and build info"""
        return jsonify({
            "version": app.config['APP_VERSION'],
            "build_time": app.config['BUILD_TIME'],
            "git_commit": app.config['GIT_COMMIT'],
            "features": {
                "auto_summary": bool(app.config.get('AUTO_SUMMARY')),
                "text_export": True,
                "qa": True,
            }
        })

    with app.app_context():
        from sqlalchemy import inspect
        from scan2study import models  # noqa: F401

        if os.getenv('RESET_DB', '').strip() in ('1', 'true', 'yes'):
            app.logger.warning('RESET_DB is set - dropping all tables...')
            db.drop_all()
            db.create_all()
            app.logger.warning('Fresh tables created')
        else:
            # Only create tables if they don't exist (safe for existing DB)
            inspector = inspect(db.engine)
            if not inspector.get_table_names():
                app.logger.info('No tables found, creating...')
                db.create_all()

    return app
