"""Flask application factory."""
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from posorder.database import init_db
from posorder.pricing import PricingConfig
import os


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Initialize Sentry for error tracking in production
    if os.getenv('SENTRY_DSN') and app.config.get('ENV') == 'production':
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=os.getenv('SENTRY_DSN'),
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,  # 10% of transactions for performance monitoring
            environment=os.getenv('FLASK_ENV', 'production'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Setup Prometheus metrics instrumentation
    from posorder.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    # Production: trust X-Forwarded-* from one reverse proxy
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1, x_prefix=0)

    # Initialize database
    init_db(app)

    # Engine settings are explicit, built once from the Flask config
    app.extensions['pricing_config'] = PricingConfig.from_mapping(app.config)
    app.json.sort_keys = app.config.get('JSON_SORT_KEYS', False)

    # Error Handlers
    from posorder.exceptions import PosError

    @app.errorhandler(PosError)
    def handle_pos_error(error):
        """Handle custom application exceptions."""
        if error.status_code >= 500:
            app.logger.error(f"PosError [{error.status_code}]: {error.message}")
        else:
            app.logger.warning(f"PosError [{error.status_code}]: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'ok': False, 'status': 'error', 'message': error.name}), error.code

    @app.errorhandler(Exception)
    def internal_error(error):
        app.logger.exception(f"Unhandled Exception: {error}")
        return jsonify({'ok': False, 'status': 'error', 'message': 'Internal Server Error'}), 500

    # Register blueprints
    from posorder.blueprints.main import main_bp
    from posorder.blueprints.quote import quote_bp
    from posorder.blueprints.orders import orders_bp
    from posorder.blueprints.metrics import metrics_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(quote_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(metrics_bp)

    # Register CLI commands
    from posorder.cli_commands import init_cli_commands
    init_cli_commands(app)

    return app
