from flask import Blueprint, g, request

from studybuddy import app_context
from studybuddy.services import feature_request_service
from studybuddy.services.auth_service import login_required

feedback_bp = Blueprint('feedback_api', __name__)


@feedback_bp.route('/api/feature-request', methods=['POST'])
@login_required
def request_feature():
    return feature_request_service.request_feature(app_context, request, g.current_user)
