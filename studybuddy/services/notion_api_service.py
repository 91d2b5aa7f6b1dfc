"""Business logic handlers for the Notion OAuth integration."""

import logging
from datetime import datetime, timedelta, timezone
from urllib.parse import urlencode

import jwt
from pymongo.errors import PyMongoError

from studybuddy.errors import ForbiddenError
from studybuddy.repositories import notion_repo, users_repo

NOTION_AUTHORIZE_URL = 'https://api.notion.com/v1/oauth/authorize'
NOTION_TOKEN_URL = 'https://api.notion.com/v1/oauth/token'
NOTION_BLOCK_CHILDREN_URL = 'https://api.notion.com/v1/blocks/{page_id}/children'
NOTION_VERSION = '2022-06-28'
NOTION_TIMEOUT_SECONDS = 20
STATE_PURPOSE = 'notion_oauth'
STATE_TTL_MINUTES = 10


def _notion_configured(config):
    return bool(config.notion_client_id and config.notion_client_secret and config.notion_redirect_uri)


def build_state(user_id, secret, now=None):
    issued_at = now or datetime.now(timezone.utc)
    return jwt.encode(
        {
            'id': str(user_id),
            'purpose': STATE_PURPOSE,
            'iat': issued_at,
            'exp': issued_at + timedelta(minutes=STATE_TTL_MINUTES),
        },
        secret,
        algorithm='HS256',
    )


def read_state(state, secret):
    try:
        claims = jwt.decode(state, secret, algorithms=['HS256'])
    except jwt.PyJWTError:
        return None
    if claims.get('purpose') != STATE_PURPOSE:
        return None
    return claims.get('id')


def get_auth_url(app_ctx, user):
    config = app_ctx.config
    if not _notion_configured(config):
        return app_ctx.jsonify({'error': 'Notion integration is not configured.'}), 500
    params = urlencode({
        'client_id': config.notion_client_id,
        'response_type': 'code',
        'owner': 'user',
        'redirect_uri': config.notion_redirect_uri,
        'state': build_state(user['_id'], config.jwt_secret),
    })
    return app_ctx.jsonify({'url': f'{NOTION_AUTHORIZE_URL}?{params}'})


def handle_callback(app_ctx, request):
    config = app_ctx.config
    code = str(request.args.get('code', '') or '').strip()
    if not code:
        return app_ctx.jsonify({'error': 'No authorization code provided.'}), 400
    user_id = read_state(str(request.args.get('state', '') or ''), config.jwt_secret)
    if not user_id:
        return app_ctx.jsonify({'error': 'User not identified.'}), 400
    if not _notion_configured(config):
        return app_ctx.jsonify({'error': 'Notion integration is not configured.'}), 500

    db = app_ctx.require_db()
    try:
        user = users_repo.get_by_id(db, user_id)
    except PyMongoError as e:
        app_ctx.logger.error(f"Notion callback user lookup failed: {e}")
        return app_ctx.jsonify({'error': 'Failed to complete Notion authorization.'}), 500
    if not user:
        return app_ctx.jsonify({'error': 'User not found.'}), 404

    try:
        response = app_ctx.requests.post(
            NOTION_TOKEN_URL,
            json={
                'grant_type': 'authorization_code',
                'code': code,
                'redirect_uri': config.notion_redirect_uri,
            },
            auth=(config.notion_client_id, config.notion_client_secret),
            timeout=NOTION_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        token_data = response.json() or {}
    except (app_ctx.requests.RequestException, ValueError) as e:
        app_ctx.logger.error(f"Notion token exchange failed for user {user['_id']}: {e}")
        return app_ctx.jsonify({'error': 'Failed to complete Notion authorization.'}), 500

    access_token = token_data.get('access_token')
    if not access_token:
        return app_ctx.jsonify({'error': 'Failed to complete Notion authorization.'}), 500

    try:
        notion_repo.upsert_for_user(db, user['_id'], {
            'accessToken': access_token,
            'workspaceId': token_data.get('workspace_id'),
            'workspaceName': token_data.get('workspace_name'),
            'botId': token_data.get('bot_id'),
            'owner': token_data.get('owner'),
            'integrationDate': datetime.now(timezone.utc),
        })
    except PyMongoError as e:
        app_ctx.logger.error(f"Storing Notion authorization failed for user {user['_id']}: {e}")
        return app_ctx.jsonify({'error': 'Failed to complete Notion authorization.'}), 500

    app_ctx.log_event(logging.INFO, 'notion_authorized', user_id=str(user['_id']))
    return app_ctx.jsonify({'message': 'Notion authorized successfully!'})


def is_authorized(app_ctx, user):
    try:
        record = notion_repo.get_by_user(app_ctx.require_db(), user['_id'])
    except PyMongoError as e:
        app_ctx.logger.error(f"Error checking Notion authorization for user {user['_id']}: {e}")
        return app_ctx.jsonify({'error': 'Internal server error.'}), 500
    return app_ctx.jsonify({'authorized': bool(record and record.get('accessToken'))})


def extract_paragraph_text(blocks):
    lines = []
    for block in blocks or []:
        if not isinstance(block, dict) or block.get('type') != 'paragraph':
            continue
        rich_text = (block.get('paragraph') or {}).get('rich_text') or []
        lines.append(' '.join(str(part.get('plain_text', '')) for part in rich_text if isinstance(part, dict)))
    return ''.join(f'{line}\n' for line in lines)


def get_page_content(app_ctx, request, user):
    page_id = str(request.args.get('pageId', '') or '').strip()
    if not page_id:
        return app_ctx.jsonify({'error': 'No page ID provided.'}), 400

    try:
        record = notion_repo.get_by_user(app_ctx.require_db(), user['_id'])
    except PyMongoError as e:
        app_ctx.logger.error(f"Error loading Notion authorization for user {user['_id']}: {e}")
        return app_ctx.jsonify({'error': 'Failed to fetch page content from Notion.'}), 500
    if not record or not record.get('accessToken'):
        return app_ctx.error_response(ForbiddenError('User not authorized with Notion.'))

    try:
        response = app_ctx.requests.get(
            NOTION_BLOCK_CHILDREN_URL.format(page_id=page_id),
            headers={
                'Authorization': f"Bearer {record['accessToken']}",
                'Notion-Version': NOTION_VERSION,
            },
            timeout=NOTION_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        payload = response.json() or {}
    except (app_ctx.requests.RequestException, ValueError) as e:
        app_ctx.logger.error(f"Error fetching Notion page {page_id}: {e}")
        return app_ctx.jsonify({'error': 'Failed to fetch page content from Notion.'}), 500

    return app_ctx.jsonify({'content': extract_paragraph_text(payload.get('results'))})
