"""Business logic handlers for subscription checkout and Stripe webhooks."""

import json
import logging

from pymongo.errors import PyMongoError

from studybuddy.repositories import users_repo
from studybuddy.services import billing_service


def _stripe_ready(app_ctx):
    return bool(app_ctx.config.stripe_secret_key)


def stripe_field(obj, name):
    # StripeObject is only a dict on older SDKs; item access works on every version.
    if obj is None:
        return None
    try:
        return obj[name]
    except (KeyError, TypeError):
        return None


def create_checkout_session(app_ctx, request, user):
    uid = str(user['_id'])
    allowed_checkout, retry_after = app_ctx.check_rate_limit(
        key=f"checkout:{app_ctx.normalize_rate_limit_key_part(uid, fallback='anon_uid')}",
        limit=app_ctx.CHECKOUT_RATE_LIMIT_MAX_REQUESTS,
        window_seconds=app_ctx.CHECKOUT_RATE_LIMIT_WINDOW_SECONDS,
    )
    if not allowed_checkout:
        app_ctx.log_rate_limit_hit('checkout', retry_after)
        return app_ctx.build_rate_limited_response(
            'Too many checkout attempts. Please wait before starting another checkout.',
            retry_after,
        )

    data = request.get_json(silent=True) or {}
    account_type = str(data.get('accountType') or '').strip() if isinstance(data, dict) else ''
    if not account_type:
        return app_ctx.jsonify({'error': 'Account type is required.'}), 400

    price_id = app_ctx.config.stripe_price_ids.get(account_type)
    if not price_id:
        return app_ctx.jsonify({'error': 'Invalid account type.'}), 400
    if not _stripe_ready(app_ctx):
        return app_ctx.jsonify({'error': 'Payments are not configured.'}), 500

    try:
        checkout_session = app_ctx.stripe.checkout.Session.create(
            ui_mode='embedded',
            payment_method_types=['card'],
            line_items=[{'price': price_id, 'quantity': 1}],
            mode='subscription',
            return_url=app_ctx.config.client_url + '/return?session_id={CHECKOUT_SESSION_ID}',
            automatic_tax={'enabled': True},
            customer_email=user.get('email', ''),
            metadata={
                'userId': uid,
                'accountType': account_type,
            },
        )
        return app_ctx.jsonify({'clientSecret': checkout_session.client_secret})
    except app_ctx.stripe.StripeError as e:
        app_ctx.logger.error(f"Stripe checkout error: {e}")
        return app_ctx.jsonify({'error': 'Failed to create embedded checkout session.'}), 500


def get_session_status(app_ctx, request, user):
    session_id = str(request.args.get('session_id', '') or '').strip()
    if not session_id:
        return app_ctx.jsonify({'error': 'Missing session_id in query.'}), 400
    if not _stripe_ready(app_ctx):
        return app_ctx.jsonify({'error': 'Payments are not configured.'}), 500

    try:
        session = app_ctx.stripe.checkout.Session.retrieve(session_id)
    except app_ctx.stripe.InvalidRequestError as e:
        app_ctx.logger.info(f"Stripe session lookup failed for {session_id}: {e}")
        return app_ctx.jsonify({'error': 'Checkout session not found.'}), 404
    except app_ctx.stripe.StripeError as e:
        app_ctx.logger.error(f"Stripe session status error: {e}")
        return app_ctx.jsonify({'error': 'Failed to retrieve session status.'}), 500

    metadata = stripe_field(session, 'metadata')
    if str(stripe_field(metadata, 'userId') or '') != str(user['_id']):
        return app_ctx.jsonify({'error': 'Checkout session not found.'}), 404
    return app_ctx.jsonify({
        'status': stripe_field(session, 'status'),
        'customer_email': stripe_field(stripe_field(session, 'customer_details'), 'email'),
    })


def cancel_subscription(app_ctx, user):
    subscription_id = user.get('subscriptionId')
    if not subscription_id:
        return app_ctx.jsonify({'error': 'No subscription found for this user.'}), 400
    if not _stripe_ready(app_ctx):
        return app_ctx.jsonify({'error': 'Payments are not configured.'}), 500

    try:
        subscription = app_ctx.stripe.Subscription.cancel(subscription_id)
    except app_ctx.stripe.StripeError as e:
        app_ctx.logger.error(f"Stripe cancel error for user {user['_id']}: {e}")
        return app_ctx.jsonify({'error': 'Failed to cancel subscription.'}), 500

    try:
        users_repo.update_fields(app_ctx.require_db(), user['_id'], {'accountType': 'free'})
    except PyMongoError as e:
        app_ctx.logger.error(f"Subscription {subscription_id} canceled but user {user['_id']} was not updated: {e}")
        return app_ctx.jsonify({'error': 'Failed to cancel subscription.'}), 500

    app_ctx.log_event(logging.INFO, 'subscription_canceled', user_id=str(user['_id']))
    return app_ctx.jsonify({
        'message': 'Subscription canceled successfully.',
        'subscription': {
            'id': stripe_field(subscription, 'id'),
            'status': stripe_field(subscription, 'status'),
        },
    })


def stripe_webhook(app_ctx, request):
    payload = request.get_data()
    sig_header = request.headers.get('Stripe-Signature', '')
    secret = app_ctx.config.stripe_webhook_secret

    if not secret:
        app_ctx.logger.warning("Stripe webhook rejected: STRIPE_WEBHOOK_SECRET is not configured")
        return app_ctx.jsonify({'error': 'Webhook not configured'}), 500

    try:
        payload_text = payload.decode('utf-8')
        app_ctx.stripe.WebhookSignature.verify_header(payload_text, sig_header, secret)
        event = json.loads(payload_text)
    except app_ctx.stripe.SignatureVerificationError as e:
        app_ctx.logger.warning(f"Stripe webhook signature verification failed: {e}")
        return 'Invalid signature', 400
    except ValueError:
        app_ctx.logger.warning("Stripe webhook: Invalid payload")
        return 'Invalid payload', 400
    if not isinstance(event, dict):
        return 'Invalid payload', 400

    event_type = event.get('type', '')
    try:
        handled, matched = billing_service.handle_event(app_ctx.require_db(), event)
    except PyMongoError as e:
        app_ctx.logger.error(f"Stripe webhook {event_type} database error: {e}")
        return 'Database error', 500

    if handled:
        app_ctx.log_event(logging.INFO, 'stripe_webhook_applied', event_type=event_type, event_id=event.get('id', ''), matched=matched)
        if not matched:
            app_ctx.logger.warning(f"Stripe webhook {event_type} ({event.get('id', '')}) matched no user")
    else:
        app_ctx.logger.info(f"Unhandled Stripe event type {event_type}")
    return '', 200
