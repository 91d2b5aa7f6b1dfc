from flask import Blueprint, g, request

from studybuddy import app_context
from studybuddy.services import account_api_service
from studybuddy.services.auth_service import login_required

account_bp = Blueprint('account_api', __name__)


@account_bp.route('/api/users/update', methods=['PUT'])
@login_required
def update_profile():
    return account_api_service.update_profile(app_context, request, g.current_user)


@account_bp.route('/api/users/change-password', methods=['PUT'])
@login_required
def change_password():
    return account_api_service.change_password(app_context, request, g.current_user)


@account_bp.route('/api/users/preferences', methods=['PUT'])
@login_required
def update_preferences():
    return account_api_service.update_preferences(app_context, request, g.current_user)
