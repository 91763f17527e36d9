"""HTTP-facing messaging operations.

Wraps ConversationStore results in response envelopes and applies the error
policy: failed reads answer with empty data, failed writes answer with an
error so a message is never silently dropped.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from pitchey.core.constants import INBOX_PAGE_SIZE
from pitchey.core.exceptions import InternalError
from pitchey.core.schemas import ApiResponse, success_response
from pitchey.messaging.schemas.conversation import (
    ConversationCreate,
    ConversationListData,
    ConversationRef,
    ConversationRefData,
)
from pitchey.messaging.schemas.message import (
    ConversationDetailData,
    ConversationMessageCreate,
    MessageCreate,
    MessageData,
    MessageListData,
)
from pitchey.messaging.services.conversation_store import ConversationStore

logger = logging.getLogger(__name__)


class MessagingService:
    def __init__(self, store: ConversationStore) -> None:
        self.store = store

    @contextmanager
    def _surface_errors(self, failure: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            self.store.db.rollback()
            logger.exception(failure)
            raise InternalError(failure) from exc

    def send_message(self, user_id: int, data: MessageCreate) -> ApiResponse[MessageData]:
        with self._surface_errors("Failed to send message"):
            message = self.store.send_message(
                user_id,
                data.content,
                conversation_id=data.conversation_id,
                recipient_id=data.recipient_id,
                message_type=data.message_type,
            )
        return success_response(MessageData(message=message))

    def send_message_to_conversation(
        self, user_id: int, conversation_id: int, data: ConversationMessageCreate
    ) -> ApiResponse[MessageData]:
        return self.send_message(
            user_id,
            MessageCreate(
                conversation_id=conversation_id,
                content=data.content,
                message_type=data.message_type,
            ),
        )

    def find_or_create_conversation(
        self, user_id: int, data: ConversationCreate
    ) -> ApiResponse[ConversationRefData]:
        with self._surface_errors("Failed to find or create conversation"):
            conversation = self.store.find_or_create_conversation(
                user_id, data.recipient_id, pitch_id=data.pitch_id
            )
        return success_response(
            ConversationRefData(conversation=ConversationRef(id=conversation.id))
        )

    def get_conversations(self, user_id: int) -> ApiResponse[ConversationListData]:
        try:
            conversations = self.store.get_conversations(user_id)
        except SQLAlchemyError:
            self.store.db.rollback()
            logger.exception("Get conversations failed for user %s", user_id)
            conversations = []
        return success_response(ConversationListData(conversations=conversations))

    def get_messages(
        self, user_id: int, limit: int = INBOX_PAGE_SIZE, offset: int = 0
    ) -> ApiResponse[MessageListData]:
        try:
            messages = self.store.get_messages(user_id, limit=limit, offset=offset)
        except SQLAlchemyError:
            self.store.db.rollback()
            logger.exception("Get messages failed for user %s", user_id)
            messages = []
        return success_response(MessageListData(messages=messages))

    def get_conversation_by_id(
        self, user_id: int, conversation_id: int
    ) -> ApiResponse[ConversationDetailData]:
        with self._surface_errors("Failed to fetch conversation"):
            conversation, messages = self.store.get_conversation_by_id(user_id, conversation_id)
        return success_response(
            ConversationDetailData(conversation=conversation, messages=messages)
        )

    def get_message_by_id(self, user_id: int, message_id: int) -> ApiResponse[MessageData]:
        with self._surface_errors("Failed to fetch message"):
            message = self.store.get_message_by_id(user_id, message_id)
        return success_response(MessageData(message=message))

    def mark_message_as_read(self, user_id: int, message_id: int) -> ApiResponse[None]:
        try:
            self.store.mark_message_as_read(user_id, message_id)
        except SQLAlchemyError:
            # Read receipts are best effort
            self.store.db.rollback()
            logger.warning("Mark as read failed for message %s", message_id, exc_info=True)
        return ApiResponse(success=True)

    def delete_message(self, user_id: int, message_id: int) -> ApiResponse[None]:
        # Success is reported whether or not the user owned the message
        with self._surface_errors("Failed to delete message"):
            self.store.delete_message(user_id, message_id)
        return ApiResponse(success=True)
