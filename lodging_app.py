"""
Flask entry point for the group lodging booking service
"""
import logging
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from config import Config

logger = logging.getLogger(__name__)


def create_app(config_object=Config):
    """Build the API app; every route answers with the JSON envelope"""
    app = Flask(__name__)
    app.config.from_object(config_object)

    from routes.api_routes import api_bp
    from routes.admin_routes import admin_bp

    app.register_blueprint(api_bp, url_prefix='/api')
    app.register_blueprint(admin_bp, url_prefix='/api/admin')

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        # 404/405 and friends outside the blueprints' own handlers
        return jsonify({'success': False, 'error': e.description}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        logger.exception(f"Unhandled error: {e}")
        return jsonify({'success': False, 'error': 'Internal server error'}), 500

    return app


if __name__ == '__main__':
    Config.validate()
    app = create_app()

    print(f"\n{'='*60}")
    print(f"  {Config.FACILITY_INFO['name']} booking service")
    print(f"{'='*60}")
    print(f"  Location:   {Config.FACILITY_INFO['location']}")
    print(f"  API:        http://{Config.HOST}:{Config.PORT}/api")
    print(f"  Admin API:  http://{Config.HOST}:{Config.PORT}/api/admin")
    print(f"  Debug mode: {Config.DEBUG}")
    print(f"{'='*60}\n")

    app.run(host=Config.HOST, port=Config.PORT, debug=Config.DEBUG)
