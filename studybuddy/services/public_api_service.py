"""Business logic handlers for the anonymous (public) tier."""

import logging

from studybuddy.errors import NotFoundError, StudyBuddyError
from studybuddy.resources import to_plain
from studybuddy.services import generation_service
from studybuddy.services.flashcards_api_service import sanitize_study_cards
from studybuddy.services.study_api_service import read_json_body


def _session_view(session_id, session):
    view = {'id': session_id}
    view.update(to_plain(session))
    return view


def generate_flashcards_public(app_ctx, request):
    data = read_json_body(request)
    transcript = str(data.get('transcript') or '').strip()
    if not transcript:
        return app_ctx.jsonify({'error': 'Transcript is required.'}), 400
    try:
        session_name, cards = generation_service.generate_flashcard_session(
            app_ctx,
            transcript,
            generation_service.PUBLIC_FLASHCARD_COUNT,
        )
    except StudyBuddyError as e:
        app_ctx.logger.warning(f"Public flashcard generation failed: {e.message}")
        return app_ctx.error_response(e)
    return app_ctx.jsonify({'sessionName': session_name, 'flashcards': cards})


def create_ephemeral_session(app_ctx, request):
    ip_key = app_ctx.normalize_rate_limit_key_part(app_ctx.client_ip(request), fallback='unknown_ip')
    allowed, retry_after = app_ctx.check_rate_limit(
        key=f"ephemeral_session:{ip_key}",
        limit=app_ctx.EPHEMERAL_RATE_LIMIT_MAX_REQUESTS,
        window_seconds=app_ctx.EPHEMERAL_RATE_LIMIT_WINDOW_SECONDS,
    )
    if not allowed:
        app_ctx.log_rate_limit_hit('ephemeral_session', retry_after)
        return app_ctx.build_rate_limited_response(app_ctx.EPHEMERAL_RATE_LIMIT_MESSAGE, retry_after)

    data = read_json_body(request)
    session_name = str(data.get('sessionName') or '').strip()
    transcript = str(data.get('transcript') or '').strip()
    cards = sanitize_study_cards(data.get('studyCards'))
    if not session_name or cards is None or not transcript:
        return app_ctx.jsonify({'error': 'sessionName, studyCards, and transcript are required.'}), 400

    session_id, session = app_ctx.ephemeral_store.create(session_name, cards, transcript)
    app_ctx.log_event(logging.INFO, 'ephemeral_session_created', cards=len(cards))
    return app_ctx.jsonify({
        'message': 'Created ephemeral flashcard session successfully.',
        'session': _session_view(session_id, session),
    }), 201


def get_ephemeral_session(app_ctx, session_id):
    try:
        session = app_ctx.ephemeral_store.get(session_id)
    except NotFoundError as e:
        return app_ctx.error_response(e)
    return app_ctx.jsonify(_session_view(session_id, session))


def delete_ephemeral_session(app_ctx, session_id):
    try:
        app_ctx.ephemeral_store.delete(session_id)
    except NotFoundError as e:
        return app_ctx.error_response(e)
    return app_ctx.jsonify({'message': 'Deleted ephemeral flashcard session successfully.'})
