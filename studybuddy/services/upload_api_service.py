"""Business logic handlers for document and text upload APIs."""

import logging

from pymongo.errors import PyMongoError

from studybuddy import resources
from studybuddy.errors import PayloadTooLarge, StudyBuddyError, ValidationError
from studybuddy.resources import format_document
from studybuddy.services import file_service
from studybuddy.services.study_api_service import (
    FOLDER_NOT_FOUND_MESSAGE,
    owned,
    read_json_body,
    resolve_folder,
    utc_now,
)

UPLOADS = resources.UPLOADS
INVALID_TYPE_MESSAGE = 'Invalid file type. Only PDF, Word, and TXT files are allowed.'


def read_uploaded_file(app_ctx, request):
    """Validate the multipart ``file`` field and return ``(file_name, mime_type, text)``."""
    uploaded = request.files.get('file')
    if uploaded is None or not uploaded.filename:
        raise ValidationError('No file uploaded.')

    mime_type = file_service.resolve_mime_type(uploaded.mimetype, uploaded.filename)
    if mime_type not in app_ctx.ALLOWED_UPLOAD_MIME_TYPES:
        raise ValidationError(INVALID_TYPE_MESSAGE)

    data = uploaded.read(app_ctx.MAX_UPLOAD_BYTES + 1)
    if len(data) > app_ctx.MAX_UPLOAD_BYTES:
        raise PayloadTooLarge()

    try:
        text = file_service.extract_text(data, mime_type)
    except file_service.UnreadableFileError as e:
        app_ctx.logger.info(f"Upload extraction failed for {uploaded.filename!r}: {e}")
        raise ValidationError('Failed to process the file.') from e
    return uploaded.filename, mime_type, text


def _store_upload(app_ctx, user, file_name, file_type, transcript, folder_oid):
    return owned(app_ctx, UPLOADS, user).create({
        'fileName': file_name,
        'fileType': file_type,
        'transcript': transcript,
        'folderID': folder_oid,
        'createdAt': utc_now(),
    })


def upload_file(app_ctx, request, user):
    try:
        file_name, mime_type, text = read_uploaded_file(app_ctx, request)
    except StudyBuddyError as e:
        return app_ctx.error_response(e)

    try:
        ok, folder_oid = resolve_folder(app_ctx, user, request.form.get('folderID'))
        if not ok:
            return app_ctx.jsonify({'error': FOLDER_NOT_FOUND_MESSAGE}), 404
        doc = _store_upload(app_ctx, user, file_name, mime_type, text, folder_oid)
    except PyMongoError as e:
        app_ctx.logger.error(f"Error storing upload for user {user['_id']}: {e}")
        return app_ctx.jsonify({'error': 'Server error while uploading file.'}), 500

    app_ctx.log_event(logging.INFO, 'upload_stored', user_id=str(user['_id']), file_type=mime_type, chars=len(text))
    return app_ctx.jsonify({
        'message': 'File uploaded successfully.',
        'upload': format_document(doc),
    }), 201


def upload_text(app_ctx, request, user):
    data = read_json_body(request)
    transcript = str(data.get('transcript') or '').strip()
    if not transcript:
        return app_ctx.jsonify({'error': 'Transcript is required.'}), 400
    file_name = str(data.get('fileName') or '').strip() or 'Untitled'

    try:
        ok, folder_oid = resolve_folder(app_ctx, user, data.get('folderID'))
        if not ok:
            return app_ctx.jsonify({'error': FOLDER_NOT_FOUND_MESSAGE}), 404
        doc = _store_upload(app_ctx, user, file_name, file_service.TEXT_MIME, transcript, folder_oid)
    except PyMongoError as e:
        app_ctx.logger.error(f"Error storing text upload for user {user['_id']}: {e}")
        return app_ctx.jsonify({'error': 'Server error while saving transcript.'}), 500

    return app_ctx.jsonify({
        'message': 'Transcript saved successfully.',
        'upload': format_document(doc),
    }), 201


def extract_public(app_ctx, request):
    """Extract text from an anonymous upload without storing anything."""
    try:
        file_name, _, text = read_uploaded_file(app_ctx, request)
    except StudyBuddyError as e:
        return app_ctx.error_response(e)
    return app_ctx.jsonify({'fileName': file_name, 'transcript': text})
