from flask import Blueprint, request

from studybuddy import app_context
from studybuddy.services import public_api_service, upload_api_service

public_bp = Blueprint('public_api', __name__)


@public_bp.route('/api/upload-public', methods=['POST'])
def upload_public():
    return upload_api_service.extract_public(app_context, request)


@public_bp.route('/api/openai/generate-flashcards-public', methods=['POST'])
def generate_flashcards_public():
    return public_api_service.generate_flashcards_public(app_context, request)


@public_bp.route('/api/flashcards-public', methods=['POST'])
def create_ephemeral_session():
    return public_api_service.create_ephemeral_session(app_context, request)


@public_bp.route('/api/flashcards-public/<session_id>', methods=['GET'])
def get_ephemeral_session(session_id):
    return public_api_service.get_ephemeral_session(app_context, session_id)


@public_bp.route('/api/flashcards-public/<session_id>', methods=['DELETE'])
def delete_ephemeral_session(session_id):
    return public_api_service.delete_ephemeral_session(app_context, session_id)
