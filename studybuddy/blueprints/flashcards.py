from flask import g, request

from studybuddy import app_context, resources
from studybuddy.services import flashcards_api_service
from studybuddy.services.auth_service import login_required

from .study import build_resource_blueprint


def create_session():
    return flashcards_api_service.create_session(app_context, request, g.current_user)


flashcards_bp = build_resource_blueprint('flashcards_api', resources.FLASHCARDS, '/api/flashcards', create_session)


@flashcards_bp.route('/api/flashcards/generate', methods=['POST'])
@login_required
def generate_session():
    return flashcards_api_service.generate_session(app_context, request, g.current_user)


@flashcards_bp.route('/api/flashcards/<session_id>/cards', methods=['POST'])
@login_required
def append_cards(session_id):
    return flashcards_api_service.append_cards(app_context, request, g.current_user, session_id)


@flashcards_bp.route('/api/flashcards/<session_id>/generate-additional', methods=['POST'])
@login_required
def generate_additional(session_id):
    return flashcards_api_service.generate_additional(app_context, g.current_user, session_id)


@flashcards_bp.route('/api/openai/generate-flashcards', methods=['POST'])
@login_required
def generate_from_transcript():
    return flashcards_api_service.generate_from_transcript(app_context, request, g.current_user)
