"""Authentication utility helpers: password hashing, JWTs and route gating."""

import functools
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt
from flask import g, jsonify, request

from studybuddy.errors import AuthError, ValidationError

BCRYPT_ROUNDS = 10
JWT_ALGORITHM = 'HS256'
# bcrypt only reads the first 72 bytes; newer releases reject longer input.
MAX_PASSWORD_BYTES = 72
PASSWORD_TOO_LONG_MESSAGE = 'Password must be at most 72 bytes.'


def password_too_long(password):
    return len(str(password).encode('utf-8')) > MAX_PASSWORD_BYTES


def hash_password(password):
    if password_too_long(password):
        raise ValidationError(PASSWORD_TOO_LONG_MESSAGE)
    return bcrypt.hashpw(str(password).encode('utf-8'), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode('utf-8')


def check_password(password, password_hash):
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(str(password).encode('utf-8'), str(password_hash).encode('utf-8'))
    except ValueError:
        return False


def token_claims_for_user(user):
    return {
        'id': str(user['_id']),
        'email': user.get('email', ''),
        'accountType': user.get('accountType', 'free'),
    }


def issue_token(claims, secret, expires_days=7, now=None):
    issued_at = now or datetime.now(timezone.utc)
    payload = {
        'id': claims['id'],
        'email': claims.get('email', ''),
        'accountType': claims.get('accountType', 'free'),
        'iat': issued_at,
        'exp': issued_at + timedelta(days=expires_days),
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def decode_token(token, secret):
    """Return the verified claims dict or raise AuthError."""
    try:
        claims = jwt.decode(token, secret, algorithms=[JWT_ALGORITHM], options={'require': ['exp', 'id']})
    except jwt.PyJWTError as exc:
        raise AuthError('Invalid or expired token.') from exc
    return claims


def extract_bearer_token(req):
    auth_header = req.headers.get('Authorization', '')
    if not auth_header.startswith('Bearer '):
        return ''
    return auth_header.split('Bearer ', 1)[1].strip()


def verify_auth_token(req, secret, logger=None):
    """Return decoded token claims, or None when invalid/missing."""
    token = extract_bearer_token(req)
    if not token:
        return None
    try:
        return decode_token(token, secret)
    except AuthError as exc:
        if logger is not None:
            logger.info(f"Token verification failed: {exc.__cause__ or exc}")
        return None


def login_required(view):
    """Gate a route on a valid bearer token and load the user into ``g.current_user``."""

    @functools.wraps(view)
    def wrapper(*args, **kwargs):
        from studybuddy import app_context
        from studybuddy.repositories import users_repo

        if not extract_bearer_token(request):
            return jsonify({'error': 'Authorization token missing or invalid.'}), 401
        claims = verify_auth_token(request, app_context.config.jwt_secret, app_context.logger)
        if not claims:
            return jsonify({'error': 'Invalid or expired token.'}), 401

        user = users_repo.get_by_id(app_context.require_db(), claims.get('id'))
        if not user:
            return jsonify({'error': 'User not found.'}), 401

        g.current_user = user
        g.token_claims = claims
        return view(*args, **kwargs)

    return wrapper
