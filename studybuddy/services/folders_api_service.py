"""Business logic handlers for folder APIs."""

from pymongo.errors import PyMongoError

from studybuddy import resources
from studybuddy.repositories.query_utils import to_object_id
from studybuddy.resources import to_plain
from studybuddy.services.study_api_service import owned, read_json_body, utc_now

FOLDERS = resources.FOLDERS


def format_folder(doc):
    return {
        'id': str(doc['_id']),
        'folderName': doc.get('folderName', ''),
        'createdAt': to_plain(doc.get('createdAt')),
    }


def list_folders(app_ctx, user):
    try:
        docs = owned(app_ctx, FOLDERS, user).list()
    except PyMongoError as e:
        app_ctx.logger.error(f"Error fetching folders for user {user['_id']}: {e}")
        return app_ctx.jsonify({'error': 'Server error while retrieving folders.'}), 500
    return app_ctx.jsonify({'folders': [format_folder(doc) for doc in docs]})


def create_folder(app_ctx, request, user):
    data = read_json_body(request)
    folder_name = str(data.get('folderName') or '').strip()
    if not folder_name:
        return app_ctx.jsonify({'error': 'folderName is required.'}), 400
    try:
        doc = owned(app_ctx, FOLDERS, user).create({'folderName': folder_name, 'createdAt': utc_now()})
    except PyMongoError as e:
        app_ctx.logger.error(f"Error creating folder for user {user['_id']}: {e}")
        return app_ctx.jsonify({'error': 'Server error while creating folder.'}), 500
    return app_ctx.jsonify({'message': 'Folder created successfully.', 'folder': format_folder(doc)}), 201


def rename_folder(app_ctx, request, user, folder_id):
    data = read_json_body(request)
    new_name = str(data.get('newName') or data.get('folderName') or '').strip()
    if not new_name:
        return app_ctx.jsonify({'error': 'newName is required.'}), 400
    try:
        matched = owned(app_ctx, FOLDERS, user).update(folder_id, {'folderName': new_name})
    except PyMongoError as e:
        app_ctx.logger.error(f"Error renaming folder {folder_id}: {e}")
        return app_ctx.jsonify({'error': 'Server error while renaming folder.'}), 500
    if not matched:
        return app_ctx.jsonify({'error': FOLDERS.not_found_message}), 404
    return app_ctx.jsonify({'message': 'Folder renamed successfully.'})


def delete_folder(app_ctx, user, folder_id):
    """Delete an owned folder and move the caller's resources in it back to unfiled."""
    folder_oid = to_object_id(folder_id)
    try:
        if folder_oid is None or not owned(app_ctx, FOLDERS, user).delete(folder_oid):
            return app_ctx.jsonify({'error': FOLDERS.not_found_message}), 404
        unfiled = 0
        for resource in resources.FILEABLE_RESOURCES:
            unfiled += owned(app_ctx, resource, user).unfile(folder_oid)
    except PyMongoError as e:
        app_ctx.logger.error(f"Error deleting folder {folder_id}: {e}")
        return app_ctx.jsonify({'error': 'Server error while deleting folder.'}), 500
    return app_ctx.jsonify({'message': 'Folder deleted successfully.', 'unfiledCount': unfiled})
