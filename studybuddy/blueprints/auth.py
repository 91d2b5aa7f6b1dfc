from flask import Blueprint, g, request

from studybuddy import app_context
from studybuddy.services import auth_api_service
from studybuddy.services.auth_service import login_required

auth_bp = Blueprint('auth_api', __name__)


@auth_bp.route('/api/auth/register', methods=['POST'])
def register():
    return auth_api_service.register(app_context, request)


@auth_bp.route('/api/auth/login', methods=['POST'])
def login():
    return auth_api_service.login(app_context, request)


@auth_bp.route('/api/auth/refresh', methods=['POST'])
def refresh():
    return auth_api_service.refresh(app_context, request)


@auth_bp.route('/api/auth/me', methods=['GET'])
@login_required
def me():
    return auth_api_service.me(app_context, g.current_user)
