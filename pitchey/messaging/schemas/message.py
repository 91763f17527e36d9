from pydantic import BaseModel, Field

from pitchey.core.constants import DEFAULT_MESSAGE_TYPE, MESSAGE_MAX_LENGTH, MESSAGE_TYPES
from pitchey.core.datetime_utils import UTCDatetime
from pitchey.messaging.schemas.conversation import ConversationSummary


class MessageCreate(BaseModel):
    """Body of ``POST /messages``; needs a conversation or a recipient."""

    conversation_id: int | None = None
    recipient_id: int | None = None
    content: str = Field(..., max_length=MESSAGE_MAX_LENGTH)
    message_type: str = Field(DEFAULT_MESSAGE_TYPE, pattern=f"^({'|'.join(MESSAGE_TYPES)})$")


class ConversationMessageCreate(BaseModel):
    content: str = Field(..., max_length=MESSAGE_MAX_LENGTH)
    message_type: str = Field(DEFAULT_MESSAGE_TYPE, pattern=f"^({'|'.join(MESSAGE_TYPES)})$")


class MessageResponse(BaseModel):
    id: int
    conversation_id: int
    sender_id: int
    content: str
    message_type: str
    created_at: UTCDatetime
    sender_name: str | None = None
    sender_avatar: str | None = None
    conversation_title: str | None = None

    class Config:
        from_attributes = True


class MessageData(BaseModel):
    message: MessageResponse


class MessageListData(BaseModel):
    messages: list[MessageResponse] = Field(default_factory=list)


class ConversationDetailData(BaseModel):
    conversation: ConversationSummary
    messages: list[MessageResponse]
