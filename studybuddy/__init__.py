import logging
import uuid
from datetime import date, datetime

from bson import ObjectId
from dotenv import load_dotenv
from flask import Flask, g, jsonify, request
from flask.json.provider import DefaultJSONProvider
from werkzeug.exceptions import RequestEntityTooLarge
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import load_config
from .errors import StudyBuddyError
from .logging_config import configure_logging, log_event, logger

MAX_CONTENT_LENGTH = 20 * 1024 * 1024 + (1024 * 1024)
RATE_LIMIT_EXEMPT_PATHS = {'/api/webhooks/stripe', '/healthz'}


class StudyBuddyJSONProvider(DefaultJSONProvider):
    @staticmethod
    def default(o):
        if isinstance(o, ObjectId):
            return str(o)
        if isinstance(o, (datetime, date)):
            return o.isoformat()
        return DefaultJSONProvider.default(o)


def apply_cors_headers(response, allowed_origins):
    origin = str(request.headers.get('Origin', '') or '').strip()
    if not origin:
        return response
    if not request.path.startswith('/api/'):
        return response
    if origin.lower() not in allowed_origins:
        return response
    response.headers['Access-Control-Allow-Origin'] = origin
    response.headers['Vary'] = 'Origin'
    response.headers['Access-Control-Allow-Headers'] = 'Authorization, Content-Type'
    response.headers['Access-Control-Allow-Methods'] = 'GET, POST, PUT, PATCH, DELETE, OPTIONS'
    return response


def register_request_hooks(app, config):
    from . import app_context
    from .extensions import sentry_sdk

    @app.before_request
    def handle_api_options_preflight():
        if request.method == 'OPTIONS' and request.path.startswith('/api/'):
            return apply_cors_headers(app.make_default_options_response(), config.cors_allowed_origins)

    @app.before_request
    def attach_request_context():
        request_id = str(request.headers.get('X-Request-ID', '') or '').strip()[:120] or uuid.uuid4().hex
        g.request_id = request_id
        if not (sentry_sdk and config.sentry_dsn):
            return
        sentry_sdk.set_tag('request.id', request_id)
        sentry_sdk.set_tag('route.path', request.path)
        sentry_sdk.set_tag('route.method', request.method)

    @app.before_request
    def enforce_api_rate_limit():
        if not request.path.startswith('/api/') or request.path in RATE_LIMIT_EXEMPT_PATHS:
            return None
        ip_key = app_context.normalize_rate_limit_key_part(app_context.client_ip(request), fallback='unknown_ip')
        allowed, retry_after = app_context.check_rate_limit(
            key=f"api:{ip_key}",
            limit=config.api_rate_limit_max_requests,
            window_seconds=config.api_rate_limit_window_seconds,
        )
        if not allowed:
            app_context.log_rate_limit_hit('api', retry_after)
            return app_context.build_rate_limited_response(
                'Too many requests from this IP, please try again later.',
                retry_after,
            )
        return None

    @app.after_request
    def attach_response_context(response):
        request_id = str(getattr(g, 'request_id', '') or '').strip()
        if request_id:
            response.headers['X-Request-ID'] = request_id
        return apply_cors_headers(response, config.cors_allowed_origins)


def register_error_handlers(app):
    @app.errorhandler(RequestEntityTooLarge)
    def handle_request_entity_too_large(_error):
        return jsonify({'error': 'File too large. Maximum size is 20MB.'}), 413

    @app.errorhandler(StudyBuddyError)
    def handle_studybuddy_error(error):
        if error.status_code >= 500:
            logger.error(f"{request.method} {request.path} failed: {error.message}")
        return jsonify(error.to_dict()), error.status_code


def create_app(config=None):
    """App factory entrypoint.

    Loads ``.env``, builds the config (unless one is passed in), opens the
    shared runtime handles and registers every API blueprint.
    """
    load_dotenv()
    config = config or load_config()
    configure_logging(config.log_level)

    from .blueprints import ALL_BLUEPRINTS
    from .extensions import init_extensions
    from .services import prompt_registry

    app = Flask(__name__)
    app.config['MAX_CONTENT_LENGTH'] = MAX_CONTENT_LENGTH
    app.json = StudyBuddyJSONProvider(app)
    if config.trusted_proxy_count:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=config.trusted_proxy_count, x_proto=config.trusted_proxy_count)

    init_extensions(app, config)
    register_request_hooks(app, config)
    register_error_handlers(app)
    for blueprint in ALL_BLUEPRINTS:
        app.register_blueprint(blueprint)

    @app.route('/healthz', methods=['GET'])
    def healthz():
        return jsonify({
            'ok': True,
            'environment': config.runtime_env,
            'prompts': prompt_registry.get_prompt_metadata()['version'],
        })

    log_event(logging.INFO, 'app_started', environment=config.runtime_env)
    return app
