"""MongoDB accessors for the users collection."""

from .query_utils import to_object_id

COLLECTION = 'users'
PUBLIC_PROJECTION = {'password': 0}


def collection(db):
    return db[COLLECTION]


def get_by_id(db, user_id, include_password=False):
    oid = to_object_id(user_id)
    if oid is None:
        return None
    projection = None if include_password else PUBLIC_PROJECTION
    return collection(db).find_one({'_id': oid}, projection)


def get_by_email(db, email):
    return collection(db).find_one({'email': email})


def insert(db, doc):
    return collection(db).insert_one(doc).inserted_id


def email_taken_by_other(db, email, user_id):
    return collection(db).find_one({'email': email, '_id': {'$ne': user_id}}, {'_id': 1}) is not None


def update_fields(db, user_id, updates):
    return collection(db).update_one({'_id': user_id}, {'$set': updates}).matched_count


def update_by_customer_id(db, customer_id, updates):
    if not customer_id:
        return 0
    return collection(db).update_one({'stripeCustomerId': customer_id}, {'$set': updates}).matched_count
