import os
import secrets
from dataclasses import dataclass, field
from typing import FrozenSet

DEV_ENV_NAMES = {'development', 'dev', 'local', 'test'}
DEFAULT_CORS_ORIGINS = frozenset({
    'http://localhost:5173',
    'http://127.0.0.1:5173',
    'https://clipcard.netlify.app',
})


def safe_int_env(name, default=0, minimum=1, maximum=100000):
    raw = (os.getenv(name, str(default)) or '').strip()
    try:
        value = int(raw)
    except Exception:
        value = int(default)
    return min(max(value, minimum), maximum)


def safe_float_env(name, default=0.0, minimum=0.0, maximum=1.0):
    raw = (os.getenv(name, str(default)) or '').strip()
    try:
        value = float(raw)
    except Exception:
        return default
    return min(max(value, minimum), maximum)


def _env(name, default=''):
    return (os.getenv(name, default) or default).strip()


def parse_cors_allowed_origins(raw):
    raw = (raw or '').strip()
    if raw:
        return frozenset(part.strip().lower() for part in raw.split(',') if part.strip())
    return DEFAULT_CORS_ORIGINS


def resolve_runtime_env():
    return (
        os.getenv('APP_ENV')
        or os.getenv('FLASK_ENV')
        or os.getenv('ENV')
        or ('production' if os.getenv('RENDER') else 'development')
    ).strip().lower()


@dataclass(frozen=True)
class AppConfig:
    """Central settings object, built from the environment by load_config()."""

    runtime_env: str = 'development'
    log_level: str = 'INFO'
    jwt_secret: str = ''
    jwt_expires_days: int = 7
    mongo_uri: str = ''
    mongo_db_name: str = 'studybuddy'
    mongo_timeout_ms: int = 5000
    openai_api_key: str = ''
    openai_model: str = 'gpt-4o'
    openai_timeout_seconds: int = 120
    openai_max_retries: int = 2
    stripe_secret_key: str = ''
    stripe_webhook_secret: str = ''
    stripe_price_id_paid: str = ''
    stripe_max_network_retries: int = 2
    client_url: str = 'http://localhost:5173'
    notion_client_id: str = ''
    notion_client_secret: str = ''
    notion_redirect_uri: str = ''
    gmail_address: str = ''
    gmail_app_pass: str = ''
    admin_email: str = ''
    cors_allowed_origins: FrozenSet[str] = field(default_factory=lambda: DEFAULT_CORS_ORIGINS)
    ephemeral_session_capacity: int = 5000
    ephemeral_session_ttl_seconds: int = 7 * 24 * 60 * 60
    api_rate_limit_max_requests: int = 100
    api_rate_limit_window_seconds: int = 15 * 60
    trusted_proxy_count: int = 0
    sentry_dsn: str = ''
    sentry_environment: str = 'production'
    sentry_traces_sample_rate: float = 0.0

    @property
    def is_dev(self):
        return self.runtime_env in DEV_ENV_NAMES

    @property
    def stripe_price_ids(self):
        return {'paid': self.stripe_price_id_paid}


def load_config() -> AppConfig:
    runtime_env = resolve_runtime_env()
    is_dev_like = runtime_env in DEV_ENV_NAMES
    jwt_secret = _env('JWT_SECRET')
    if not jwt_secret:
        if not is_dev_like:
            raise RuntimeError('JWT_SECRET must be set in non-development environments.')
        jwt_secret = secrets.token_hex(32)

    return AppConfig(
        runtime_env=runtime_env,
        log_level=(_env('LOG_LEVEL', 'INFO') or 'INFO').upper(),
        jwt_secret=jwt_secret,
        jwt_expires_days=safe_int_env('JWT_EXPIRES_DAYS', 7, minimum=1, maximum=90),
        mongo_uri=_env('MONGO_URI'),
        mongo_db_name=_env('MONGO_DB_NAME', 'studybuddy'),
        mongo_timeout_ms=safe_int_env('MONGO_TIMEOUT_MS', 5000, minimum=100, maximum=60000),
        openai_api_key=_env('OPENAI_API_KEY'),
        openai_model=_env('OPENAI_MODEL', 'gpt-4o'),
        openai_timeout_seconds=safe_int_env('OPENAI_TIMEOUT_SECONDS', 120, minimum=5, maximum=600),
        openai_max_retries=safe_int_env('OPENAI_MAX_RETRIES', 2, minimum=0, maximum=10),
        stripe_secret_key=_env('STRIPE_SECRET_KEY'),
        stripe_webhook_secret=_env('STRIPE_WEBHOOK_SECRET'),
        stripe_price_id_paid=_env('STRIPE_PRICE_ID_PAID'),
        stripe_max_network_retries=safe_int_env('STRIPE_MAX_NETWORK_RETRIES', 2, minimum=0, maximum=10),
        client_url=_env('CLIENT_URL', 'http://localhost:5173').rstrip('/'),
        notion_client_id=_env('NOTION_CLIENT_ID'),
        notion_client_secret=_env('NOTION_CLIENT_SECRET'),
        notion_redirect_uri=_env('NOTION_REDIRECT_URI'),
        gmail_address=_env('GMAIL_ADDRESS'),
        gmail_app_pass=_env('GMAIL_APP_PASS'),
        admin_email=_env('ADMIN_EMAIL'),
        cors_allowed_origins=parse_cors_allowed_origins(os.getenv('CORS_ALLOWED_ORIGINS', '')),
        ephemeral_session_capacity=safe_int_env('EPHEMERAL_SESSION_CAPACITY', 5000, minimum=10, maximum=1000000),
        ephemeral_session_ttl_seconds=safe_int_env('EPHEMERAL_SESSION_TTL_SECONDS', 7 * 24 * 60 * 60, minimum=60, maximum=90 * 24 * 60 * 60),
        api_rate_limit_max_requests=safe_int_env('API_RATE_LIMIT_MAX_REQUESTS', 100, minimum=1, maximum=100000),
        api_rate_limit_window_seconds=safe_int_env('API_RATE_LIMIT_WINDOW_SECONDS', 15 * 60, minimum=10, maximum=86400),
        trusted_proxy_count=safe_int_env('TRUSTED_PROXY_COUNT', 0, minimum=0, maximum=5),
        sentry_dsn=_env('SENTRY_DSN_BACKEND'),
        sentry_environment=_env('SENTRY_ENVIRONMENT', runtime_env) or runtime_env,
        sentry_traces_sample_rate=safe_float_env('SENTRY_TRACES_SAMPLE_RATE', 0.0),
    )
