"""Runtime handles and helpers that service functions receive as ``app_ctx``.

``extensions.init_extensions`` fills in the handles at startup. Tests swap
attributes on this module (``db``, ``openai_client``, ``stripe``,
``requests``, ``smtplib``, ``time``) with test doubles.
"""

import logging
import smtplib
import threading
import time

import requests
import stripe
from flask import jsonify

from studybuddy.config import AppConfig
from studybuddy.errors import ConfigError, RateLimited
from studybuddy.logging_config import log_event, logger
from studybuddy.services import rate_limit_service

config = AppConfig()
db = None
openai_client = None
ephemeral_store = None

FREE_FLASHCARD_SESSION_LIMIT = 2
MAX_UPLOAD_BYTES = 20 * 1024 * 1024
ALLOWED_UPLOAD_MIME_TYPES = {
    'application/pdf',
    'application/msword',
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'text/plain',
}

EPHEMERAL_RATE_LIMIT_MAX_REQUESTS = 2
EPHEMERAL_RATE_LIMIT_WINDOW_SECONDS = 24 * 60 * 60
EPHEMERAL_RATE_LIMIT_MESSAGE = (
    'You have reached the maximum number of study sessions allowed per day. '
    'Please try again later or create an account.'
)
CHECKOUT_RATE_LIMIT_MAX_REQUESTS = 10
CHECKOUT_RATE_LIMIT_WINDOW_SECONDS = 10 * 60
RATE_LIMIT_PRUNE_THRESHOLD = 10000

RATE_LIMIT_EVENTS = {}
RATE_LIMIT_LOCK = threading.Lock()


def require_db():
    if db is None:
        raise ConfigError('Database is not configured.')
    return db


def error_response(error):
    return jsonify(error.to_dict()), error.status_code


def client_ip(request):
    # X-Forwarded-For is only honoured through ProxyFix for the configured trusted hops.
    return request.remote_addr or 'unknown'


def check_rate_limit(key, limit, window_seconds):
    if len(RATE_LIMIT_EVENTS) > RATE_LIMIT_PRUNE_THRESHOLD:
        rate_limit_service.prune_rate_limit_events(
            RATE_LIMIT_EVENTS,
            RATE_LIMIT_LOCK,
            max(EPHEMERAL_RATE_LIMIT_WINDOW_SECONDS, config.api_rate_limit_window_seconds),
            time,
        )
    return rate_limit_service.check_rate_limit(
        key,
        limit,
        window_seconds,
        in_memory_events=RATE_LIMIT_EVENTS,
        in_memory_lock=RATE_LIMIT_LOCK,
        time_module=time,
    )


def normalize_rate_limit_key_part(value, fallback='anon', max_len=120):
    return rate_limit_service.normalize_rate_limit_key_part(value, fallback=fallback, max_len=max_len)


def log_rate_limit_hit(limit_name, retry_after=0):
    log_event(logging.WARNING, 'rate_limit_hit', limit=limit_name, retry_after=int(retry_after))


def build_rate_limited_response(message, retry_after):
    error = RateLimited(message, retry_after=retry_after)
    response = jsonify(error.to_dict())
    response.status_code = error.status_code
    response.headers['Retry-After'] = str(error.retry_after)
    return response


def require_openai():
    if openai_client is None:
        raise ConfigError('OpenAI API key is not configured.')
    return openai_client
