from flask import Blueprint, g, request

from studybuddy import app_context
from studybuddy.services import notion_api_service
from studybuddy.services.auth_service import login_required

notion_bp = Blueprint('notion_api', __name__)


@notion_bp.route('/api/notion/auth-url', methods=['GET'])
@login_required
def auth_url():
    return notion_api_service.get_auth_url(app_context, g.current_user)


@notion_bp.route('/api/notion/callback', methods=['GET'])
def callback():
    return notion_api_service.handle_callback(app_context, request)


@notion_bp.route('/api/notion/is-authorized', methods=['GET'])
@login_required
def is_authorized():
    return notion_api_service.is_authorized(app_context, g.current_user)


@notion_bp.route('/api/notion/page-content', methods=['GET'])
@login_required
def page_content():
    return notion_api_service.get_page_content(app_context, request, g.current_user)
