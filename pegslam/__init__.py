import os
from flask import Flask


def create_app():
    app = Flask(__name__)

    db_url = os.environ.get("DATABASE_URL")
    if not db_url:
        raise RuntimeError("DATABASE_URL is required; competitions and weigh-ins live in PostgreSQL.")

    log_level = os.environ.get("LOG_LEVEL")
    if log_level:
        try:
            app.logger.setLevel(log_level.upper())
        except ValueError:
            app.logger.warning("Ignoring unknown LOG_LEVEL=%r", log_level)

    # Initialize connection pool early (optional; direct connect works if pool init fails)
    try:
        from . import datastore_pg as _pg
        try:
            minconn = int(os.environ.get("DB_POOL_MIN", "1"))
        except ValueError:
            minconn = 1
        try:
            maxconn = int(os.environ.get("DB_POOL_MAX", "10"))
        except ValueError:
            maxconn = 10
        _pg.init_pool(minconn=minconn, maxconn=maxconn)
    except Exception:  # pragma: no cover
        app.logger.exception("PostgreSQL pool initialization failed; continuing without pool")

    from . import routes
    app.register_blueprint(routes.bp)

    if os.environ.get("AUDIT_ON_STARTUP", "1") != "0":
        app.logger.info("Checking competition schedules")
        with app.app_context():
            try:
                routes.audit_competition_schedules()
            except Exception:  # pylint: disable=broad-except
                app.logger.exception("Error auditing competition schedules")

    return app
