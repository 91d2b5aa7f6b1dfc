"""Apply verified Stripe webhook events to user billing state.

Every handler overwrites fields on exactly one user document, so replaying
an event leaves the user in the same state.
"""

from studybuddy.repositories import users_repo
from studybuddy.repositories.query_utils import to_object_id

PAID_SUBSCRIPTION_STATUSES = {'active', 'trialing'}


def _object_id_of(value):
    if isinstance(value, dict):
        return value.get('id')
    return value


def apply_checkout_completed(db, session):
    metadata = session.get('metadata') or {}
    user_oid = to_object_id(metadata.get('userId'))
    if user_oid is None:
        return 0
    return users_repo.update_fields(db, user_oid, {
        'stripeCustomerId': _object_id_of(session.get('customer')),
        'accountType': metadata.get('accountType') or 'paid',
        'subscriptionStatus': 'active',
        'subscriptionId': _object_id_of(session.get('subscription')),
    })


def apply_subscription_change(db, subscription):
    status = subscription.get('status')
    return users_repo.update_by_customer_id(db, _object_id_of(subscription.get('customer')), {
        'subscriptionStatus': status,
        'subscriptionId': subscription.get('id'),
        'accountType': 'paid' if status in PAID_SUBSCRIPTION_STATUSES else 'free',
    })


def apply_subscription_deleted(db, subscription):
    return users_repo.update_by_customer_id(db, _object_id_of(subscription.get('customer')), {
        'subscriptionStatus': 'canceled',
        'subscriptionId': None,
        'accountType': 'free',
    })


def apply_invoice_succeeded(db, invoice):
    return users_repo.update_by_customer_id(db, _object_id_of(invoice.get('customer')), {
        'paymentStatus': 'succeeded',
        'lastInvoice': invoice.get('id'),
    })


def apply_invoice_failed(db, invoice):
    return users_repo.update_by_customer_id(db, _object_id_of(invoice.get('customer')), {
        'paymentStatus': 'failed',
        'lastInvoice': invoice.get('id'),
    })


EVENT_HANDLERS = {
    'checkout.session.completed': apply_checkout_completed,
    'customer.subscription.created': apply_subscription_change,
    'customer.subscription.updated': apply_subscription_change,
    'customer.subscription.deleted': apply_subscription_deleted,
    'invoice.payment_succeeded': apply_invoice_succeeded,
    'invoice.payment_failed': apply_invoice_failed,
}


def handle_event(db, event):
    """Dispatch one event; returns ``(handled, matched_users)``.

    Database errors propagate so the caller can ask Stripe to redeliver.
    """
    handler = EVENT_HANDLERS.get(event.get('type'))
    if handler is None:
        return False, 0
    data_object = (event.get('data') or {}).get('object') or {}
    return True, handler(db, data_object)
