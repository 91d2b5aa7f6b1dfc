"""Business logic handlers shared by every owner-scoped study resource.

Each handler takes a ``ResourceType`` from ``studybuddy.resources`` so the
flashcard, quiz, summary, AI chat and upload routes share one implementation.
"""

import logging
from datetime import datetime, timezone

from pymongo.errors import PyMongoError

from studybuddy import resources
from studybuddy.errors import StudyBuddyError
from studybuddy.repositories import owned_repo
from studybuddy.repositories.query_utils import parse_folder_param
from studybuddy.resources import format_document
from studybuddy.services import generation_service

UPLOAD_NOT_OWNED_MESSAGE = 'Upload not found or not owned by user.'
FOLDER_NOT_FOUND_MESSAGE = 'Folder not found.'


def utc_now():
    return datetime.now(timezone.utc)


def owned(app_ctx, resource, user):
    return owned_repo.for_owner(app_ctx.require_db(), resource.collection, user['_id'], sort_field=resource.date_field)


def read_json_body(request):
    data = request.get_json(silent=True) or {}
    return data if isinstance(data, dict) else {}


def resolve_folder(app_ctx, user, raw_folder_id):
    """Return ``(ok, folder_oid)``; unknown or unowned folders are not ok."""
    ok, folder_oid = parse_folder_param(raw_folder_id)
    if not ok:
        return False, None
    if folder_oid is None:
        return True, None
    if owned(app_ctx, resources.FOLDERS, user).get(folder_oid, {'_id': 1}) is None:
        return False, None
    return True, folder_oid


def load_owned_upload(app_ctx, user, upload_id):
    return owned(app_ctx, resources.UPLOADS, user).get(upload_id)


def _server_error(app_ctx, resource, action, user, error):
    app_ctx.logger.error(f"Error {action} {resource.key} for user {user['_id']}: {error}")
    return app_ctx.jsonify({'error': f'Server error while {action} {resource.label.lower()}.'}), 500


def list_resources(app_ctx, resource, user):
    try:
        docs = owned(app_ctx, resource, user).list()
    except PyMongoError as e:
        return _server_error(app_ctx, resource, 'retrieving', user, e)
    return app_ctx.jsonify({resource.list_key: [format_document(doc) for doc in docs]})


def list_resources_by_folder(app_ctx, resource, user, folder_id):
    ok, folder_oid = parse_folder_param(folder_id)
    if not ok:
        return app_ctx.jsonify({resource.list_key: []})
    try:
        docs = owned(app_ctx, resource, user).list_by_folder(folder_oid)
    except PyMongoError as e:
        return _server_error(app_ctx, resource, 'retrieving', user, e)
    return app_ctx.jsonify({resource.list_key: [format_document(doc) for doc in docs]})


def get_resource(app_ctx, resource, user, doc_id):
    try:
        doc = owned(app_ctx, resource, user).get(doc_id)
    except PyMongoError as e:
        return _server_error(app_ctx, resource, 'retrieving', user, e)
    if doc is None:
        return app_ctx.jsonify({'error': resource.not_found_message}), 404
    return app_ctx.jsonify({resource.item_key: format_document(doc)})


def rename_resource(app_ctx, request, resource, user, doc_id):
    data = read_json_body(request)
    new_name = str(data.get(resource.rename_field) or data.get('newName') or '').strip()
    if not new_name:
        return app_ctx.jsonify({'error': f'{resource.rename_field} is required.'}), 400
    try:
        matched = owned(app_ctx, resource, user).update(doc_id, {resource.name_field: new_name})
    except PyMongoError as e:
        return _server_error(app_ctx, resource, 'renaming', user, e)
    if not matched:
        return app_ctx.jsonify({'error': resource.not_found_message}), 404
    return app_ctx.jsonify({'message': f'{resource.label} renamed successfully.'})


def assign_folder(app_ctx, request, resource, user, doc_id):
    data = read_json_body(request)
    try:
        ok, folder_oid = resolve_folder(app_ctx, user, data.get('folderID'))
        if not ok:
            return app_ctx.jsonify({'error': FOLDER_NOT_FOUND_MESSAGE}), 404
        matched = owned(app_ctx, resource, user).update(doc_id, {'folderID': folder_oid})
    except PyMongoError as e:
        return _server_error(app_ctx, resource, 'assigning a folder to', user, e)
    if not matched:
        return app_ctx.jsonify({'error': resource.not_found_message}), 404
    return app_ctx.jsonify({'message': 'Folder assigned successfully.'})


def delete_resource(app_ctx, resource, user, doc_id):
    try:
        deleted = owned(app_ctx, resource, user).delete(doc_id)
    except PyMongoError as e:
        return _server_error(app_ctx, resource, 'deleting', user, e)
    if not deleted:
        return app_ctx.jsonify({'error': resource.not_found_message}), 404
    app_ctx.log_event(logging.INFO, 'resource_deleted', resource=resource.key, user_id=str(user['_id']))
    return app_ctx.jsonify({'message': f'{resource.label} deleted successfully.'})


def _generate_payload(app_ctx, resource, transcript, user_message):
    if resource is resources.QUIZZES:
        return generation_service.generate_quiz(app_ctx, transcript)
    if resource is resources.SUMMARIES:
        return generation_service.generate_summary(app_ctx, transcript, user_message)
    if resource is resources.AICHATS:
        session_name, answer = generation_service.generate_chat_reply(app_ctx, transcript, user_message)
        now = utc_now()
        return session_name, [
            {'role': 'user', 'content': user_message, 'timestamp': now},
            {'role': 'assistant', 'content': answer, 'timestamp': now},
        ]
    raise ValueError(f'{resource.key} is not generated from an upload')


def create_generated_resource(app_ctx, request, resource, user):
    """Generate a quiz, summary or chat from an owned upload and store it."""
    data = read_json_body(request)
    upload_id = str(data.get('uploadId') or '').strip()
    user_message = str(data.get('userMessage') or '').strip()
    if resource is resources.AICHATS and (not upload_id or not user_message):
        return app_ctx.jsonify({'error': 'uploadId and userMessage are required.'}), 400
    if not upload_id:
        return app_ctx.jsonify({'error': 'uploadId is required.'}), 400

    try:
        upload = load_owned_upload(app_ctx, user, upload_id)
        if upload is None:
            return app_ctx.jsonify({'error': UPLOAD_NOT_OWNED_MESSAGE}), 404
        ok, folder_oid = resolve_folder(app_ctx, user, data.get('folderID'))
        if not ok:
            return app_ctx.jsonify({'error': FOLDER_NOT_FOUND_MESSAGE}), 404
    except PyMongoError as e:
        return _server_error(app_ctx, resource, 'creating', user, e)

    try:
        session_name, payload = _generate_payload(app_ctx, resource, upload.get('transcript', ''), user_message)
    except StudyBuddyError as e:
        app_ctx.logger.warning(f"Generation failed for {resource.key} (user {user['_id']}): {e.message}")
        return app_ctx.error_response(e)

    try:
        doc = owned(app_ctx, resource, user).create({
            'uploadId': upload['_id'],
            'studySession': session_name,
            resource.payload_field: payload,
            'folderID': folder_oid,
            'createdDate': utc_now(),
        })
    except PyMongoError as e:
        return _server_error(app_ctx, resource, 'creating', user, e)

    app_ctx.log_event(logging.INFO, 'resource_generated', resource=resource.key, user_id=str(user['_id']))
    return app_ctx.jsonify({
        'message': f'{resource.label} created successfully.',
        resource.item_key: format_document(doc),
    }), 201
