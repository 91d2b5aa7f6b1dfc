"""Business logic handlers specific to flashcard sessions."""

import logging

from pymongo.errors import PyMongoError

from studybuddy import resources
from studybuddy.errors import ForbiddenError, StudyBuddyError
from studybuddy.resources import format_document
from studybuddy.services import generation_service
from studybuddy.services.study_api_service import (
    FOLDER_NOT_FOUND_MESSAGE,
    UPLOAD_NOT_OWNED_MESSAGE,
    load_owned_upload,
    owned,
    read_json_body,
    resolve_folder,
    utc_now,
)

FLASHCARDS = resources.FLASHCARDS
FREE_LIMIT_MESSAGE = 'You have reached the maximum number of study sessions allowed for free accounts.'
PAID_ONLY_MESSAGE = 'This feature is available for paid accounts only.'


def sanitize_study_cards(raw_cards):
    """Return cleaned ``{question, answer}`` dicts, or None when any card is malformed."""
    if not isinstance(raw_cards, list):
        return None
    cards = []
    for card in raw_cards:
        if not isinstance(card, dict):
            return None
        question = card.get('question')
        answer = card.get('answer')
        if not isinstance(question, str) or not isinstance(answer, str):
            return None
        cards.append({'question': question, 'answer': answer})
    return cards


def is_free_account(user):
    return str(user.get('accountType') or 'free') != 'paid'


def _free_limit_reached(app_ctx, user):
    if not is_free_account(user):
        return False
    return owned(app_ctx, FLASHCARDS, user).count() >= app_ctx.FREE_FLASHCARD_SESSION_LIMIT


def _store_session(app_ctx, user, upload, session_name, cards, folder_oid):
    return owned(app_ctx, FLASHCARDS, user).create({
        'uploadId': upload['_id'],
        'studySession': session_name,
        'flashcardsJSON': cards,
        'transcript': upload.get('transcript', ''),
        'folderID': folder_oid,
        'createdDate': utc_now(),
    })


def create_session(app_ctx, request, user):
    data = read_json_body(request)
    upload_id = str(data.get('uploadId') or '').strip()
    session_name = str(data.get('sessionName') or '').strip()
    if not upload_id:
        return app_ctx.jsonify({'error': 'uploadId is required.'}), 400
    if not session_name:
        return app_ctx.jsonify({'error': 'sessionName is required.'}), 400
    cards = sanitize_study_cards(data.get('studyCards'))
    if cards is None:
        return app_ctx.jsonify({'error': 'studyCards must be an array of {question, answer} objects.'}), 400

    try:
        if _free_limit_reached(app_ctx, user):
            return app_ctx.error_response(ForbiddenError(FREE_LIMIT_MESSAGE))
        upload = load_owned_upload(app_ctx, user, upload_id)
        if upload is None:
            return app_ctx.jsonify({'error': UPLOAD_NOT_OWNED_MESSAGE}), 404
        ok, folder_oid = resolve_folder(app_ctx, user, data.get('folderID'))
        if not ok:
            return app_ctx.jsonify({'error': FOLDER_NOT_FOUND_MESSAGE}), 404
        doc = _store_session(app_ctx, user, upload, session_name, cards, folder_oid)
    except PyMongoError as e:
        app_ctx.logger.error(f"Error creating flashcard session for user {user['_id']}: {e}")
        return app_ctx.jsonify({'error': 'Server error while creating flashcard session.'}), 500

    return app_ctx.jsonify({
        'message': 'Flashcard session created successfully.',
        'flashcard': format_document(doc),
    }), 201


def generate_session(app_ctx, request, user):
    """Generate a flashcard session from an owned upload and store it."""
    data = read_json_body(request)
    upload_id = str(data.get('uploadId') or '').strip()
    if not upload_id:
        return app_ctx.jsonify({'error': 'uploadId is required.'}), 400

    try:
        if _free_limit_reached(app_ctx, user):
            return app_ctx.error_response(ForbiddenError(FREE_LIMIT_MESSAGE))
        upload = load_owned_upload(app_ctx, user, upload_id)
        if upload is None:
            return app_ctx.jsonify({'error': UPLOAD_NOT_OWNED_MESSAGE}), 404
        ok, folder_oid = resolve_folder(app_ctx, user, data.get('folderID'))
        if not ok:
            return app_ctx.jsonify({'error': FOLDER_NOT_FOUND_MESSAGE}), 404
    except PyMongoError as e:
        app_ctx.logger.error(f"Error preparing flashcard generation for user {user['_id']}: {e}")
        return app_ctx.jsonify({'error': 'Server error while creating flashcard session.'}), 500

    try:
        session_name, cards = generation_service.generate_flashcard_session(
            app_ctx,
            upload.get('transcript', ''),
            generation_service.AUTH_FLASHCARD_COUNT,
        )
    except StudyBuddyError as e:
        app_ctx.logger.warning(f"Flashcard generation failed for user {user['_id']}: {e.message}")
        return app_ctx.error_response(e)

    try:
        doc = _store_session(app_ctx, user, upload, session_name, cards, folder_oid)
    except PyMongoError as e:
        app_ctx.logger.error(f"Error storing generated flashcards for user {user['_id']}: {e}")
        return app_ctx.jsonify({'error': 'Server error while creating flashcard session.'}), 500

    app_ctx.log_event(logging.INFO, 'resource_generated', resource=FLASHCARDS.key, user_id=str(user['_id']))
    return app_ctx.jsonify({
        'message': 'Flashcard session created successfully.',
        'flashcard': format_document(doc),
    }), 201


def append_cards(app_ctx, request, user, session_id):
    data = read_json_body(request)
    cards = sanitize_study_cards(data.get('studyCards'))
    if not cards:
        return app_ctx.jsonify({'error': 'studyCards must be a non-empty array of {question, answer} objects.'}), 400
    try:
        matched = owned(app_ctx, FLASHCARDS, user).push_items(session_id, 'flashcardsJSON', cards)
    except PyMongoError as e:
        app_ctx.logger.error(f"Error adding flashcards to session {session_id}: {e}")
        return app_ctx.jsonify({'error': 'Server error while adding flashcards.'}), 500
    if not matched:
        return app_ctx.jsonify({'error': FLASHCARDS.not_found_message}), 404
    return app_ctx.jsonify({'message': 'Flashcards added successfully.', 'addedCount': len(cards)})


def generate_additional(app_ctx, user, session_id):
    if is_free_account(user):
        return app_ctx.error_response(ForbiddenError(PAID_ONLY_MESSAGE))

    collection = owned(app_ctx, FLASHCARDS, user)
    try:
        session = collection.get(session_id)
    except PyMongoError as e:
        app_ctx.logger.error(f"Error loading flashcard session {session_id}: {e}")
        return app_ctx.jsonify({'error': 'Server error while generating additional flashcards.'}), 500
    if session is None:
        return app_ctx.jsonify({'error': FLASHCARDS.not_found_message}), 404

    try:
        new_cards = generation_service.generate_additional_flashcards(
            app_ctx,
            session.get('transcript', ''),
            session.get('flashcardsJSON') or [],
        )
    except StudyBuddyError as e:
        app_ctx.logger.warning(f"Additional flashcard generation failed for session {session_id}: {e.message}")
        return app_ctx.error_response(e)

    try:
        if new_cards:
            collection.push_items(session_id, 'flashcardsJSON', new_cards)
    except PyMongoError as e:
        app_ctx.logger.error(f"Error storing additional flashcards for session {session_id}: {e}")
        return app_ctx.jsonify({'error': 'Server error while generating additional flashcards.'}), 500

    return app_ctx.jsonify({
        'message': 'Additional flashcards generated and added successfully.',
        'newFlashcards': new_cards,
    })


def generate_from_transcript(app_ctx, request, user):
    """Return generated cards for a pasted transcript; the client saves them via create_session."""
    data = read_json_body(request)
    transcript = str(data.get('transcript') or '').strip()
    if not transcript:
        return app_ctx.jsonify({'error': 'Transcript is required.'}), 400
    try:
        session_name, cards = generation_service.generate_flashcard_session(
            app_ctx,
            transcript,
            generation_service.AUTH_FLASHCARD_COUNT,
        )
    except StudyBuddyError as e:
        app_ctx.logger.warning(f"Flashcard generation failed for user {user['_id']}: {e.message}")
        return app_ctx.error_response(e)
    return app_ctx.jsonify({'sessionName': session_name, 'flashcards': cards})
