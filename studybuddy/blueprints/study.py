from flask import Blueprint, g, request

from studybuddy import app_context, resources
from studybuddy.services import study_api_service
from studybuddy.services.auth_service import login_required


def build_resource_blueprint(name, resource, url_prefix, create_view=None):
    """Blueprint with the list/get/rename/assign-folder/delete routes every study resource shares."""
    bp = Blueprint(name, __name__)

    @bp.route(url_prefix, methods=['GET'])
    @login_required
    def list_resources():
        return study_api_service.list_resources(app_context, resource, g.current_user)

    @bp.route(f'{url_prefix}/folder/<folder_id>', methods=['GET'])
    @login_required
    def list_resources_by_folder(folder_id):
        return study_api_service.list_resources_by_folder(app_context, resource, g.current_user, folder_id)

    @bp.route(f'{url_prefix}/<doc_id>', methods=['GET'])
    @login_required
    def get_resource(doc_id):
        return study_api_service.get_resource(app_context, resource, g.current_user, doc_id)

    @bp.route(f'{url_prefix}/<doc_id>', methods=['DELETE'])
    @login_required
    def delete_resource(doc_id):
        return study_api_service.delete_resource(app_context, resource, g.current_user, doc_id)

    @bp.route(f'{url_prefix}/<doc_id>/rename', methods=['PUT'])
    @login_required
    def rename_resource(doc_id):
        return study_api_service.rename_resource(app_context, request, resource, g.current_user, doc_id)

    @bp.route(f'{url_prefix}/<doc_id>/assign-folder', methods=['PUT'])
    @login_required
    def assign_folder(doc_id):
        return study_api_service.assign_folder(app_context, request, resource, g.current_user, doc_id)

    if create_view is not None:
        bp.add_url_rule(url_prefix, 'create_resource', login_required(create_view), methods=['POST'])

    return bp


def _generated_create_view(resource):
    def create_resource():
        return study_api_service.create_generated_resource(app_context, request, resource, g.current_user)

    return create_resource


quizzes_bp = build_resource_blueprint(
    'quizzes_api',
    resources.QUIZZES,
    '/api/multiple-choice-quizzes',
    _generated_create_view(resources.QUIZZES),
)
summaries_bp = build_resource_blueprint(
    'summaries_api',
    resources.SUMMARIES,
    '/api/summaries',
    _generated_create_view(resources.SUMMARIES),
)
aichats_bp = build_resource_blueprint(
    'aichats_api',
    resources.AICHATS,
    '/api/aichats',
    _generated_create_view(resources.AICHATS),
)
