"""Business logic handlers for registration, login and token APIs."""

import logging
from datetime import datetime, timezone

from pymongo.errors import DuplicateKeyError, PyMongoError

from studybuddy.errors import AuthError, Conflict, ValidationError
from studybuddy.repositories import users_repo
from studybuddy.services import auth_service


def normalize_email(value):
    return str(value or '').strip().lower()


def public_user(user):
    return {
        'id': str(user['_id']),
        'email': user.get('email', ''),
        'firstName': user.get('firstName', ''),
        'lastName': user.get('lastName', ''),
        'company': user.get('company'),
        'accountType': user.get('accountType', 'free'),
        'subscriptionStatus': user.get('subscriptionStatus'),
        'paymentStatus': user.get('paymentStatus'),
        'preferences': user.get('preferences') or {},
    }


def issue_user_token(app_ctx, user):
    return auth_service.issue_token(
        auth_service.token_claims_for_user(user),
        app_ctx.config.jwt_secret,
        app_ctx.config.jwt_expires_days,
    )


def register(app_ctx, request):
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        data = {}
    email = normalize_email(data.get('email'))
    password = str(data.get('password') or '')
    first_name = str(data.get('firstName') or '').strip()
    last_name = str(data.get('lastName') or '').strip()
    company = str(data.get('company') or '').strip() or None

    if not email or not password or not first_name or not last_name:
        return app_ctx.jsonify({'error': 'Email, password, first name, and last name are required.'}), 400
    if auth_service.password_too_long(password):
        return app_ctx.error_response(ValidationError(auth_service.PASSWORD_TOO_LONG_MESSAGE))

    db = app_ctx.require_db()
    try:
        if users_repo.get_by_email(db, email):
            return app_ctx.error_response(Conflict('User already exists.'))

        user = {
            'email': email,
            'password': auth_service.hash_password(password),
            'firstName': first_name,
            'lastName': last_name,
            'company': company,
            'accountType': 'free',
            'createdAt': datetime.now(timezone.utc),
            'stripeCustomerId': None,
            'subscriptionId': None,
            'subscriptionStatus': None,
            'lastInvoice': None,
            'paymentStatus': None,
        }
        try:
            user['_id'] = users_repo.insert(db, user)
        except DuplicateKeyError:
            return app_ctx.error_response(Conflict('User already exists.'))

        app_ctx.log_event(logging.INFO, 'user_registered', user_id=str(user['_id']))
        return app_ctx.jsonify({
            'message': 'User registered successfully.',
            'token': issue_user_token(app_ctx, user),
            'user': public_user(user),
        }), 201
    except PyMongoError as e:
        app_ctx.logger.error(f"Registration error: {e}")
        return app_ctx.jsonify({'error': 'Server error during registration.'}), 500


def login(app_ctx, request):
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        data = {}
    email = normalize_email(data.get('email'))
    password = str(data.get('password') or '')
    if not email or not password:
        return app_ctx.jsonify({'error': 'Email and password are required.'}), 400

    db = app_ctx.require_db()
    try:
        user = users_repo.get_by_email(db, email)
    except PyMongoError as e:
        app_ctx.logger.error(f"Login error: {e}")
        return app_ctx.jsonify({'error': 'Server error during login.'}), 500

    if not user or not auth_service.check_password(password, user.get('password')):
        return app_ctx.jsonify({'error': 'Invalid credentials.'}), 401

    return app_ctx.jsonify({
        'message': 'Login successful.',
        'token': issue_user_token(app_ctx, user),
        'user': public_user(user),
    })


def refresh(app_ctx, request):
    token = auth_service.extract_bearer_token(request)
    if not token:
        data = request.get_json(silent=True) or {}
        if isinstance(data, dict):
            token = str(data.get('token') or '').strip()
    if not token:
        return app_ctx.jsonify({'error': 'No token provided.'}), 401

    try:
        claims = auth_service.decode_token(token, app_ctx.config.jwt_secret)
    except AuthError as e:
        app_ctx.logger.info(f"Token refresh rejected: {e.__cause__ or e}")
        return app_ctx.jsonify({'error': 'Token refresh failed.'}), 401

    new_token = auth_service.issue_token(claims, app_ctx.config.jwt_secret, app_ctx.config.jwt_expires_days)
    return app_ctx.jsonify({'token': new_token})


def me(app_ctx, user):
    return app_ctx.jsonify({'user': public_user(user)})
