"""Flask application factory."""
import logging
import os
import traceback

from flask import Flask, request, jsonify
from flask_wtf.csrf import CSRFProtect, CSRFError
from werkzeug.exceptions import HTTPException

from garage.database import init_db


def _configure_logging(app):
    level = logging.DEBUG if app.config.get('DEBUG') else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)
    _configure_logging(app)

    csrf = CSRFProtect(app)

    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        app.logger.warning(f"CSRF Error: {e.description}")
        return jsonify({
            'status': 'error',
            'error': 'CSRFError',
            'message': 'Jeton CSRF manquant ou expiré. Rechargez la page.'
        }), 400

    # Sentry only reports from production deployments
    if os.getenv('SENTRY_DSN') and (app.config.get('ENV') == 'production' or os.getenv('FLASK_ENV') == 'production'):
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=os.getenv('SENTRY_DSN'),
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            environment=os.getenv('FLASK_ENV', 'production'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    from garage.services.cache_service import init_cache
    init_cache(app)

    from garage.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    # Behind Nginx in production
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    init_db(app)

    from garage.middleware import load_current_user
    app.before_request(load_current_user)

    from garage.exceptions import GarageError

    @app.errorhandler(GarageError)
    def handle_garage_error(error):
        """Domain errors carry their own status code and French message."""
        if error.status_code >= 500:
            app.logger.error(f"GarageError [{error.status_code}]: {error.message}")
        else:
            app.logger.info(f"GarageError [{error.status_code}] on {request.path}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({
            'status': 'error',
            'error': error.name,
            'message': error.description
        }), error.code

    @app.errorhandler(Exception)
    def internal_error(error):
        app.logger.error(f"Unhandled Exception: {error}")
        app.logger.error(f"Traceback: {traceback.format_exc()}")
        return jsonify({'status': 'error', 'error': 'InternalServerError', 'message': 'Erreur interne du serveur'}), 500

    from garage.blueprints.auth import auth_bp
    from garage.blueprints.invoices import invoices_bp
    from garage.blueprints.groups import groups_bp
    from garage.blueprints.customers import customers_bp
    from garage.blueprints.vehicles import vehicles_bp
    from garage.blueprints.parts import parts_bp
    from garage.blueprints.users import users_bp
    from garage.blueprints.metrics import metrics_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(invoices_bp)
    app.register_blueprint(groups_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(vehicles_bp)
    app.register_blueprint(parts_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(metrics_bp)

    from garage.cli_commands import init_cli_commands
    init_cli_commands(app)

    return app
