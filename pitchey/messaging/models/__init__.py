from pitchey.messaging.models.conversation import Conversation
from pitchey.messaging.models.conversation_participant import ConversationParticipant
from pitchey.messaging.models.message import Message
from pitchey.messaging.models.message_read_receipt import MessageReadReceipt

__all__ = ["Conversation", "ConversationParticipant", "Message", "MessageReadReceipt"]
