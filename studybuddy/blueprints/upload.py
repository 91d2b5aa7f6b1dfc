from flask import g, request

from studybuddy import app_context, resources
from studybuddy.services import upload_api_service
from studybuddy.services.auth_service import login_required

from .study import build_resource_blueprint


def upload_file():
    return upload_api_service.upload_file(app_context, request, g.current_user)


upload_bp = build_resource_blueprint('upload_api', resources.UPLOADS, '/api/upload', upload_file)


@upload_bp.route('/api/upload/text', methods=['POST'])
@login_required
def upload_text():
    return upload_api_service.upload_text(app_context, request, g.current_user)
