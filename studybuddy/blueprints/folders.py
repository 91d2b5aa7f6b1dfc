from flask import Blueprint, g, request

from studybuddy import app_context
from studybuddy.services import folders_api_service
from studybuddy.services.auth_service import login_required

folders_bp = Blueprint('folders_api', __name__)


@folders_bp.route('/api/folders', methods=['GET'])
@login_required
def list_folders():
    return folders_api_service.list_folders(app_context, g.current_user)


@folders_bp.route('/api/folders', methods=['POST'])
@login_required
def create_folder():
    return folders_api_service.create_folder(app_context, request, g.current_user)


@folders_bp.route('/api/folders/<folder_id>/rename', methods=['PUT'])
@login_required
def rename_folder(folder_id):
    return folders_api_service.rename_folder(app_context, request, g.current_user, folder_id)


@folders_bp.route('/api/folders/<folder_id>', methods=['DELETE'])
@login_required
def delete_folder(folder_id):
    return folders_api_service.delete_folder(app_context, g.current_user, folder_id)
