import stripe
from openai import OpenAI
from pymongo import ASCENDING, MongoClient

try:
    import sentry_sdk
    from sentry_sdk.integrations.flask import FlaskIntegration
except Exception:
    sentry_sdk = None
    FlaskIntegration = None

from studybuddy import app_context
from studybuddy.logging_config import logger
from studybuddy.services.ephemeral_store import EphemeralSessionStore


def init_mongo(config):
    if not config.mongo_uri:
        logger.warning('MONGO_URI is not set; database-backed endpoints will return 500.')
        return None
    client = MongoClient(config.mongo_uri, serverSelectionTimeoutMS=config.mongo_timeout_ms, tz_aware=True)
    return client[config.mongo_db_name]


def ensure_indexes(db):
    if db is None:
        return
    try:
        db['users'].create_index([('email', ASCENDING)], unique=True)
        db['notion_authorizations'].create_index([('userId', ASCENDING)], unique=True)
        for name in ('uploads', 'flashcards', 'multiple_choice_quizzes', 'summaries', 'aichats', 'folders'):
            db[name].create_index([('userId', ASCENDING)])
    except Exception as e:
        logger.warning(f"Could not ensure MongoDB indexes: {e}")


def init_stripe(config):
    stripe.api_key = config.stripe_secret_key or None
    stripe.max_network_retries = config.stripe_max_network_retries
    if not config.stripe_secret_key:
        logger.warning('STRIPE_SECRET_KEY is not set; checkout endpoints will return 500.')
    return stripe


def init_openai(config):
    if not config.openai_api_key:
        logger.warning('OPENAI_API_KEY is not set; generation endpoints will return 500.')
        return None
    return OpenAI(
        api_key=config.openai_api_key,
        timeout=float(config.openai_timeout_seconds),
        max_retries=config.openai_max_retries,
    )


def init_sentry(config):
    if not (config.sentry_dsn and sentry_sdk and FlaskIntegration):
        return False
    sentry_sdk.init(
        dsn=config.sentry_dsn,
        integrations=[FlaskIntegration()],
        traces_sample_rate=config.sentry_traces_sample_rate,
        send_default_pii=False,
        environment=config.sentry_environment,
    )
    return True


def init_extensions(app, config) -> None:
    """Open the shared runtime handles once and publish them on app_context."""
    app_context.config = config
    app_context.db = init_mongo(config)
    ensure_indexes(app_context.db)
    app_context.stripe = init_stripe(config)
    app_context.openai_client = init_openai(config)
    app_context.ephemeral_store = EphemeralSessionStore(
        capacity=config.ephemeral_session_capacity,
        ttl_seconds=config.ephemeral_session_ttl_seconds,
    )
    sentry_enabled = init_sentry(config)

    app.extensions.setdefault('studybuddy', {})
    app.extensions['studybuddy'].update({
        'db': app_context.db,
        'openai_client': app_context.openai_client,
        'ephemeral_store': app_context.ephemeral_store,
        'sentry_enabled': sentry_enabled,
    })
