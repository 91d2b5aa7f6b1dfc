"""MongoDB accessors for stored Notion OAuth grants."""

COLLECTION = 'notion_authorizations'


def get_by_user(db, user_id):
    return db[COLLECTION].find_one({'userId': user_id})


def upsert_for_user(db, user_id, fields):
    doc = dict(fields)
    doc['userId'] = user_id
    return db[COLLECTION].update_one({'userId': user_id}, {'$set': doc}, upsert=True)
