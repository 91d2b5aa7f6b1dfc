from flask import Blueprint, g, request

from studybuddy import app_context
from studybuddy.services import payments_api_service
from studybuddy.services.auth_service import login_required

payments_bp = Blueprint('payments_api', __name__)


@payments_bp.route('/api/checkout/create-checkout-session', methods=['POST'])
@login_required
def create_checkout_session():
    return payments_api_service.create_checkout_session(app_context, request, g.current_user)


@payments_bp.route('/api/checkout/session-status', methods=['GET'])
@login_required
def session_status():
    return payments_api_service.get_session_status(app_context, request, g.current_user)


@payments_bp.route('/api/checkout/cancel-subscription', methods=['POST'])
@login_required
def cancel_subscription():
    return payments_api_service.cancel_subscription(app_context, g.current_user)


@payments_bp.route('/api/webhooks/stripe', methods=['POST'])
def stripe_webhook():
    return payments_api_service.stripe_webhook(app_context, request)
