from .auth import auth_bp
from .account import account_bp
from .flashcards import flashcards_bp
from .study import quizzes_bp, summaries_bp, aichats_bp
from .folders import folders_bp
from .upload import upload_bp
from .public import public_bp
from .payments import payments_bp
from .notion import notion_bp
from .feedback import feedback_bp

ALL_BLUEPRINTS = [
    auth_bp,
    account_bp,
    flashcards_bp,
    quizzes_bp,
    summaries_bp,
    aichats_bp,
    folders_bp,
    upload_bp,
    public_bp,
    payments_bp,
    notion_bp,
    feedback_bp,
]

__all__ = [
    'auth_bp', 'account_bp', 'flashcards_bp', 'quizzes_bp', 'summaries_bp', 'aichats_bp',
    'folders_bp', 'upload_bp', 'public_bp', 'payments_bp', 'notion_bp', 'feedback_bp', 'ALL_BLUEPRINTS',
]
