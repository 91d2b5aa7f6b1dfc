"""Business logic handlers for account settings APIs."""

from pymongo.errors import PyMongoError

from studybuddy.errors import Conflict, ValidationError
from studybuddy.repositories import users_repo
from studybuddy.services import auth_service
from studybuddy.services.auth_api_service import normalize_email, public_user


def update_profile(app_ctx, request, user):
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        data = {}
    first_name = str(data.get('firstName') or '').strip()
    last_name = str(data.get('lastName') or '').strip()
    email = normalize_email(data.get('email'))
    if not first_name or not last_name or not email:
        return app_ctx.jsonify({'error': 'First name, last name, and email are required.'}), 400

    updates = {'firstName': first_name, 'lastName': last_name, 'email': email}
    if 'company' in data:
        updates['company'] = str(data.get('company') or '').strip() or None

    db = app_ctx.require_db()
    try:
        if email != user.get('email') and users_repo.email_taken_by_other(db, email, user['_id']):
            return app_ctx.error_response(Conflict('Email is already in use.'))
        if not users_repo.update_fields(db, user['_id'], updates):
            return app_ctx.jsonify({'error': 'User not found.'}), 404
        updated = users_repo.get_by_id(db, user['_id'])
    except PyMongoError as e:
        app_ctx.logger.error(f"Error updating account for user {user['_id']}: {e}")
        return app_ctx.jsonify({'error': 'Server error while updating account information.'}), 500
    return app_ctx.jsonify({'user': public_user(updated)})


def change_password(app_ctx, request, user):
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        data = {}
    current_password = str(data.get('currentPassword') or '')
    new_password = str(data.get('newPassword') or '')
    if not current_password or not new_password:
        return app_ctx.jsonify({'error': 'Current password and new password are required.'}), 400
    if auth_service.password_too_long(new_password):
        return app_ctx.error_response(ValidationError(auth_service.PASSWORD_TOO_LONG_MESSAGE))

    db = app_ctx.require_db()
    try:
        stored = users_repo.get_by_id(db, user['_id'], include_password=True)
        if not stored:
            return app_ctx.jsonify({'error': 'User not found.'}), 404
        if not auth_service.check_password(current_password, stored.get('password')):
            return app_ctx.jsonify({'error': 'Current password is incorrect.'}), 401
        users_repo.update_fields(db, user['_id'], {'password': auth_service.hash_password(new_password)})
    except PyMongoError as e:
        app_ctx.logger.error(f"Error changing password for user {user['_id']}: {e}")
        return app_ctx.jsonify({'error': 'Server error while changing password.'}), 500
    return app_ctx.jsonify({'message': 'Password changed successfully.'})


def update_preferences(app_ctx, request, user):
    data = request.get_json(silent=True) or {}
    preferences = data.get('preferences') if isinstance(data, dict) else None
    if not isinstance(preferences, dict):
        return app_ctx.jsonify({'error': 'Invalid preferences object.'}), 400

    db = app_ctx.require_db()
    try:
        if not users_repo.update_fields(db, user['_id'], {'preferences': preferences}):
            return app_ctx.jsonify({'error': 'User not found.'}), 404
        updated = users_repo.get_by_id(db, user['_id'])
    except PyMongoError as e:
        app_ctx.logger.error(f"Error updating preferences for user {user['_id']}: {e}")
        return app_ctx.jsonify({'error': 'Server error while updating preferences.'}), 500
    return app_ctx.jsonify({'user': public_user(updated)})
