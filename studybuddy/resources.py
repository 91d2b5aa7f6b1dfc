"""Resource type table for the owner-scoped study collections."""

from dataclasses import dataclass
from datetime import datetime

from bson import ObjectId


@dataclass(frozen=True)
class ResourceType:
    key: str
    collection: str
    label: str
    payload_field: str
    list_key: str = 'data'
    item_key: str = 'data'
    name_field: str = 'studySession'
    rename_field: str = 'newName'
    date_field: str = 'createdDate'

    @property
    def not_found_message(self):
        return f'{self.label} not found.'


FLASHCARDS = ResourceType(
    key='flashcards',
    collection='flashcards',
    label='Flashcard session',
    payload_field='flashcardsJSON',
    list_key='flashcards',
    item_key='flashcard',
    rename_field='sessionName',
)
QUIZZES = ResourceType(
    key='quizzes',
    collection='multiple_choice_quizzes',
    label='Quiz',
    payload_field='questionsJSON',
)
SUMMARIES = ResourceType(
    key='summaries',
    collection='summaries',
    label='Summary',
    payload_field='summary',
)
AICHATS = ResourceType(
    key='aichats',
    collection='aichats',
    label='AI Chat',
    payload_field='messagesJSON',
    list_key='chats',
    item_key='chat',
)
UPLOADS = ResourceType(
    key='uploads',
    collection='uploads',
    label='Upload',
    payload_field='transcript',
    list_key='uploads',
    item_key='upload',
    name_field='fileName',
    date_field='createdAt',
)
FOLDERS = ResourceType(
    key='folders',
    collection='folders',
    label='Folder',
    payload_field='folderName',
    list_key='folders',
    item_key='folder',
    name_field='folderName',
    rename_field='newName',
    date_field='createdAt',
)

STUDY_RESOURCES = (FLASHCARDS, QUIZZES, SUMMARIES, AICHATS)
FILEABLE_RESOURCES = STUDY_RESOURCES + (UPLOADS,)


def to_plain(value):
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: to_plain(item) for key, item in value.items()}
    if isinstance(value, list):
        return [to_plain(item) for item in value]
    return value


def format_document(doc, exclude=(), fileable=True):
    """Return a JSON-ready copy of a stored document with ``id`` in place of ``_id``."""
    if doc is None:
        return None
    formatted = {'id': str(doc.get('_id', ''))}
    for key, value in doc.items():
        if key == '_id' or key in exclude:
            continue
        formatted[key] = to_plain(value)
    if fileable:
        formatted.setdefault('folderID', None)
    return formatted
