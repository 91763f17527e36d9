"""
Database base module - imports all models for Alembic migration detection.

The imports appear unused but register every table on ``Base.metadata``.
"""

from pitchey.auth.models.session import UserSession
from pitchey.auth.models.user import User
from pitchey.db.session import Base
from pitchey.messaging.models.conversation import Conversation
from pitchey.messaging.models.conversation_participant import ConversationParticipant
from pitchey.messaging.models.message import Message
from pitchey.messaging.models.message_read_receipt import MessageReadReceipt

__all__ = [
    "Base",
    "User",
    "UserSession",
    "Conversation",
    "ConversationParticipant",
    "Message",
    "MessageReadReceipt",
]
