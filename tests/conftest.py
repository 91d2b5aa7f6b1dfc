import copy
from types import SimpleNamespace

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

import studybuddy
from studybuddy import app_context
from studybuddy.config import AppConfig

TEST_JWT_SECRET = "test-jwt-secret"
TEST_WEBHOOK_SECRET = "whsec_test_secret"


def _matches(doc, query):
    for key, expected in (query or {}).items():
        actual = doc.get(key)
        if isinstance(expected, dict) and expected and all(op.startswith("$") for op in expected):
            for op, operand in expected.items():
                if op == "$ne" and actual == operand:
                    return False
                if op == "$in" and actual not in operand:
                    return False
        elif actual != expected:
            return False
    return True


def _project(doc, projection):
    doc = copy.deepcopy(doc)
    if not projection:
        return doc
    if all(not value for value in projection.values()):
        for key in projection:
            doc.pop(key, None)
        return doc
    keep = {key for key, value in projection.items() if value}
    keep.add("_id")
    return {key: value for key, value in doc.items() if key in keep}


class FakeCursor(list):
    def sort(self, field, direction=1):
        super().sort(key=lambda doc: (doc.get(field) is not None, doc.get(field) or 0), reverse=direction < 0)
        return self


class FakeCollection:
    """Small in-memory stand-in for the pymongo Collection methods the app uses."""

    def __init__(self, name):
        self.name = name
        self.docs = []
        self.unique_fields = set()
        self.fail_with = None

    def _check(self):
        if self.fail_with is not None:
            raise self.fail_with

    def create_index(self, keys, unique=False, **_kwargs):
        if unique:
            self.unique_fields.add(keys[0][0])
        return "_".join(key for key, _ in keys)

    def find(self, query=None, projection=None):
        self._check()
        return FakeCursor(_project(doc, projection) for doc in self.docs if _matches(doc, query))

    def find_one(self, query=None, projection=None):
        self._check()
        for doc in self.docs:
            if _matches(doc, query):
                return _project(doc, projection)
        return None

    def insert_one(self, doc):
        self._check()
        for field in self.unique_fields:
            if any(existing.get(field) == doc.get(field) for existing in self.docs):
                raise DuplicateKeyError(f"duplicate key on {field}")
        stored = copy.deepcopy(doc)
        stored.setdefault("_id", ObjectId())
        self.docs.append(stored)
        return SimpleNamespace(inserted_id=stored["_id"])

    def _apply(self, doc, update):
        for key, value in update.get("$set", {}).items():
            doc[key] = copy.deepcopy(value)
        for key, value in update.get("$push", {}).items():
            items = value["$each"] if isinstance(value, dict) and "$each" in value else [value]
            doc.setdefault(key, []).extend(copy.deepcopy(items))

    def update_one(self, query, update, upsert=False):
        self._check()
        for doc in self.docs:
            if _matches(doc, query):
                self._apply(doc, update)
                return SimpleNamespace(matched_count=1, modified_count=1, upserted_id=None)
        if upsert:
            doc = {key: value for key, value in query.items() if not isinstance(value, dict)}
            doc["_id"] = ObjectId()
            self._apply(doc, update)
            self.docs.append(doc)
            return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=doc["_id"])
        return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=None)

    def update_many(self, query, update):
        self._check()
        matched = [doc for doc in self.docs if _matches(doc, query)]
        for doc in matched:
            self._apply(doc, update)
        return SimpleNamespace(matched_count=len(matched), modified_count=len(matched))

    def delete_one(self, query):
        self._check()
        for index, doc in enumerate(self.docs):
            if _matches(doc, query):
                del self.docs[index]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    def count_documents(self, query):
        self._check()
        return sum(1 for doc in self.docs if _matches(doc, query))


class FakeDatabase:
    def __init__(self):
        self.collections = {}
        self["users"].create_index([("email", 1)], unique=True)

    def __getitem__(self, name):
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]


class FakeOpenAI:
    """Returns canned completion texts in order and records each request."""

    def __init__(self, *contents):
        self.contents = list(contents)
        self.calls = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.calls.append(kwargs)
        content = self.contents.pop(0)
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@pytest.fixture()
def test_config():
    return AppConfig(
        runtime_env="test",
        jwt_secret=TEST_JWT_SECRET,
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret=TEST_WEBHOOK_SECRET,
        stripe_price_id_paid="price_paid_123",
        client_url="http://localhost:5173",
    )


@pytest.fixture()
def fake_db():
    return FakeDatabase()


@pytest.fixture()
def app(monkeypatch, test_config, fake_db):
    flask_app = studybuddy.create_app(test_config)
    flask_app.config["TESTING"] = True
    monkeypatch.setattr(app_context, "db", fake_db)
    monkeypatch.setattr(app_context, "openai_client", None)
    app_context.RATE_LIMIT_EVENTS.clear()
    app_context.ephemeral_store.clear()
    yield flask_app
    app_context.RATE_LIMIT_EVENTS.clear()


@pytest.fixture()
def client(app):
    with app.test_client() as test_client:
        yield test_client


def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


def register_user(client, email="student@example.com", password="s3cret-pass", first_name="Ada", last_name="Lovelace"):
    response = client.post("/api/auth/register", json={
        "email": email,
        "password": password,
        "firstName": first_name,
        "lastName": last_name,
    })
    assert response.status_code == 201, response.get_json()
    body = response.get_json()
    return body["token"], body["user"]["id"]


@pytest.fixture()
def make_user(client):
    def _make(email="student@example.com", **kwargs):
        return register_user(client, email=email, **kwargs)

    return _make


def set_account_type(fake_db, user_id, account_type):
    fake_db["users"].update_one({"_id": ObjectId(user_id)}, {"$set": {"accountType": account_type}})
