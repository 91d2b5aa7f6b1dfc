"""Owner-scoped MongoDB accessor shared by every user resource collection."""

from pymongo import DESCENDING

from .query_utils import to_object_id


class OwnedCollection:
    """Wrap one collection so every query is filtered by ``userId``.

    Handlers never build the owner filter themselves. Ids that do not parse as
    ObjectIds behave like missing documents.
    """

    def __init__(self, collection, owner_id, sort_field='createdDate'):
        self.collection = collection
        self.owner_id = owner_id
        self.sort_field = sort_field

    def _scoped(self, **extra):
        query = {'userId': self.owner_id}
        query.update(extra)
        return query

    def _by_id(self, doc_id):
        oid = to_object_id(doc_id)
        if oid is None:
            return None
        return self._scoped(_id=oid)

    def list(self, **extra):
        cursor = self.collection.find(self._scoped(**extra))
        if self.sort_field:
            cursor = cursor.sort(self.sort_field, DESCENDING)
        return list(cursor)

    def list_by_folder(self, folder_oid):
        return self.list(folderID=folder_oid)

    def get(self, doc_id, projection=None):
        query = self._by_id(doc_id)
        if query is None:
            return None
        return self.collection.find_one(query, projection)

    def create(self, fields):
        doc = dict(fields)
        doc['userId'] = self.owner_id
        result = self.collection.insert_one(doc)
        doc['_id'] = result.inserted_id
        return doc

    def update(self, doc_id, updates):
        query = self._by_id(doc_id)
        if query is None:
            return False
        result = self.collection.update_one(query, {'$set': updates})
        return result.matched_count > 0

    def push_items(self, doc_id, field, items):
        query = self._by_id(doc_id)
        if query is None:
            return False
        result = self.collection.update_one(query, {'$push': {field: {'$each': list(items)}}})
        return result.matched_count > 0

    def delete(self, doc_id):
        query = self._by_id(doc_id)
        if query is None:
            return False
        result = self.collection.delete_one(query)
        return result.deleted_count > 0

    def count(self, **extra):
        return self.collection.count_documents(self._scoped(**extra))

    def unfile(self, folder_oid):
        result = self.collection.update_many(self._scoped(folderID=folder_oid), {'$set': {'folderID': None}})
        return result.modified_count


def for_owner(db, collection_name, owner_id, sort_field='createdDate'):
    return OwnedCollection(db[collection_name], owner_id, sort_field=sort_field)
