from pydantic import BaseModel, Field

from pitchey.core.datetime_utils import UTCDatetime


class ConversationCreate(BaseModel):
    recipient_id: int | None = None
    pitch_id: int | None = None


class ConversationRef(BaseModel):
    id: int


class ConversationSummary(BaseModel):
    id: int
    title: str | None = None
    is_group: bool = False
    created_by_id: int | None = None
    pitch_id: int | None = None
    last_message_at: UTCDatetime | None = None
    created_at: UTCDatetime
    updated_at: UTCDatetime | None = None

    class Config:
        from_attributes = True


class ConversationListItem(ConversationSummary):
    last_message: str | None = None
    last_message_time: UTCDatetime | None = None
    participant_count: int = 0
    # Other party of a direct conversation; None for group conversations
    participant_name: str | None = None
    participant_type: str | None = None


class ConversationListData(BaseModel):
    conversations: list[ConversationListItem] = Field(default_factory=list)


class ConversationRefData(BaseModel):
    conversation: ConversationRef
