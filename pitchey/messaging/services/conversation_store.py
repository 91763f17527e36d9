"""Conversation and message persistence."""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from sqlalchemy import and_, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from pitchey.auth.models.user import User
from pitchey.core.constants import (
    CONVERSATION_MESSAGES_LIMIT,
    DEFAULT_MESSAGE_TYPE,
    INBOX_PAGE_SIZE,
)
from pitchey.core.datetime_utils import utcnow
from pitchey.core.exceptions import InvalidRecipientError, NotFoundError, ValidationError
from pitchey.messaging.models.conversation import Conversation, direct_key_for
from pitchey.messaging.models.conversation_participant import ConversationParticipant
from pitchey.messaging.models.message import Message
from pitchey.messaging.models.message_read_receipt import MessageReadReceipt
from pitchey.messaging.schemas.conversation import ConversationListItem, ConversationSummary
from pitchey.messaging.schemas.message import MessageResponse

logger = logging.getLogger(__name__)


class ConversationStore:
    """Reads and writes conversations on behalf of one acting user per call.

    Database errors propagate; the messaging service decides which ones
    become empty results and which ones become error responses.
    """

    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow) -> None:
        self.db = db
        self.clock = clock

    def find_or_create_conversation(
        self, user_id: int, recipient_id: int | None, pitch_id: int | None = None
    ) -> Conversation:
        """Return the direct conversation between two users, creating it on first use."""
        if not recipient_id or recipient_id == user_id:
            raise InvalidRecipientError()

        existing = self._find_direct_conversation(user_id, recipient_id)
        if existing is not None:
            return existing

        recipient = self.db.query(User.id).filter(User.id == recipient_id).first()
        if recipient is None:
            raise NotFoundError("Recipient not found", resource="user")

        return self._create_direct_conversation(user_id, recipient_id, pitch_id)

    def send_message(
        self,
        user_id: int,
        content: str | None,
        conversation_id: int | None = None,
        recipient_id: int | None = None,
        message_type: str = DEFAULT_MESSAGE_TYPE,
    ) -> MessageResponse:
        text = (content or "").strip()
        if not text:
            raise ValidationError("Message content is required", field="content")

        if conversation_id is not None:
            conversation = self._get_participating_conversation(user_id, conversation_id)
            if conversation is None:
                raise NotFoundError("Conversation not found", resource="conversation")
        elif recipient_id is not None:
            conversation = self.find_or_create_conversation(user_id, recipient_id)
        else:
            raise InvalidRecipientError("A conversation or recipient is required")

        now = self.clock()
        message = Message(
            conversation_id=conversation.id,
            sender_id=user_id,
            content=text,
            message_type=message_type or DEFAULT_MESSAGE_TYPE,
            created_at=now,
        )
        self.db.add(message)
        conversation.last_message_at = now
        conversation.updated_at = now
        self.db.commit()
        self.db.refresh(message)

        logger.info(
            "Message %s sent by user %s in conversation %s",
            message.id,
            user_id,
            conversation.id,
        )
        return self._message_response(message)

    def get_conversations(self, user_id: int) -> list[ConversationListItem]:
        """Every conversation of the user, most recently active first."""
        rows = (
            self.db.query(
                Conversation,
                self._last_message_column(Message.content).label("last_message"),
                self._last_message_column(Message.created_at).label("last_message_time"),
                self._participant_count_column().label("participant_count"),
                self._other_participant_column(user_id, User.display_name_expr()).label(
                    "participant_name"
                ),
                self._other_participant_column(user_id, User.user_type).label(
                    "participant_type"
                ),
            )
            .join(
                ConversationParticipant,
                ConversationParticipant.conversation_id == Conversation.id,
            )
            .filter(ConversationParticipant.user_id == user_id)
            .order_by(
                func.coalesce(
                    Conversation.last_message_at,
                    Conversation.updated_at,
                    Conversation.created_at,
                ).desc(),
                Conversation.id.desc(),
            )
            .all()
        )

        items = []
        for conversation, last_message, last_time, count, other_name, other_type in rows:
            items.append(
                ConversationListItem(
                    **self._summary_fields(conversation),
                    last_message=last_message,
                    last_message_time=last_time,
                    participant_count=count or 0,
                    participant_name=None if conversation.is_group else other_name,
                    participant_type=None if conversation.is_group else other_type,
                )
            )
        return items

    def get_conversation_by_id(
        self, user_id: int, conversation_id: int
    ) -> tuple[ConversationSummary, list[MessageResponse]]:
        """Conversation plus its first messages, oldest first.

        Conversations the user does not take part in are reported as not
        found so their existence is not revealed.
        """
        conversation = self._get_participating_conversation(user_id, conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation not found", resource="conversation")

        messages = (
            self.db.query(Message)
            .filter(
                Message.conversation_id == conversation_id,
                Message.is_deleted.is_(False),
            )
            .order_by(Message.created_at.asc(), Message.id.asc())
            .limit(CONVERSATION_MESSAGES_LIMIT)
            .all()
        )

        summary = ConversationSummary(**self._summary_fields(conversation))
        return summary, [self._message_response(m) for m in messages]

    def get_messages(
        self, user_id: int, limit: int = INBOX_PAGE_SIZE, offset: int = 0
    ) -> list[MessageResponse]:
        """Inbox view: messages across all of the user's conversations, newest first."""
        rows = (
            self.db.query(Message, Conversation.title)
            .join(Conversation, Conversation.id == Message.conversation_id)
            .join(
                ConversationParticipant,
                ConversationParticipant.conversation_id == Conversation.id,
            )
            .filter(
                ConversationParticipant.user_id == user_id,
                Message.is_deleted.is_(False),
            )
            .order_by(Message.created_at.desc(), Message.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return [self._message_response(m, conversation_title=title) for m, title in rows]

    def get_message_by_id(self, user_id: int, message_id: int) -> MessageResponse:
        message = self._get_visible_message(user_id, message_id)
        if message is None:
            raise NotFoundError("Message not found", resource="message")
        return self._message_response(message)

    def mark_message_as_read(self, user_id: int, message_id: int) -> bool:
        """Record a read receipt. Returns False when nothing new was recorded."""
        if self._get_visible_message(user_id, message_id) is None:
            return False

        if self.db.get(MessageReadReceipt, (message_id, user_id)) is not None:
            return False

        try:
            with self.db.begin_nested():
                self.db.add(
                    MessageReadReceipt(message_id=message_id, user_id=user_id, read_at=self.clock())
                )
        except IntegrityError:
            # Recorded by a concurrent request
            return False
        self.db.commit()
        return True

    def delete_message(self, user_id: int, message_id: int) -> bool:
        """Soft-delete a message sent by the user.

        Returns False when nothing was deleted; callers cannot tell a missing
        message from someone else's.
        """
        result = self.db.execute(
            update(Message)
            .where(
                Message.id == message_id,
                Message.sender_id == user_id,
                Message.is_deleted.is_(False),
            )
            .values(is_deleted=True, deleted_at=self.clock())
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        deleted = bool(result.rowcount)  # type: ignore[attr-defined]
        if not deleted:
            logger.info("Delete of message %s by user %s matched no rows", message_id, user_id)
        return deleted

    def _find_direct_conversation(self, user_id: int, other_id: int) -> Conversation | None:
        mine = aliased(ConversationParticipant)
        theirs = aliased(ConversationParticipant)
        conversation: Conversation | None = (
            self.db.query(Conversation)
            .join(mine, and_(mine.conversation_id == Conversation.id, mine.user_id == user_id))
            .join(
                theirs,
                and_(theirs.conversation_id == Conversation.id, theirs.user_id == other_id),
            )
            .filter(Conversation.is_group.is_(False))
            .order_by(Conversation.id.asc())
            .first()
        )
        return conversation

    def _create_direct_conversation(
        self, user_id: int, recipient_id: int, pitch_id: int | None
    ) -> Conversation:
        now = self.clock()
        key = direct_key_for(user_id, recipient_id)
        try:
            with self.db.begin_nested():
                conversation = Conversation(
                    is_group=False,
                    created_by_id=user_id,
                    pitch_id=pitch_id,
                    direct_key=key,
                    created_at=now,
                    updated_at=now,
                )
                self.db.add(conversation)
                self.db.flush()
                self.db.add_all(
                    [
                        ConversationParticipant(
                            conversation_id=conversation.id, user_id=user_id, joined_at=now
                        ),
                        ConversationParticipant(
                            conversation_id=conversation.id, user_id=recipient_id, joined_at=now
                        ),
                    ]
                )
        except IntegrityError:
            # Lost the race against another request creating the same pair
            winner: Conversation | None = (
                self.db.query(Conversation).filter(Conversation.direct_key == key).first()
            )
            if winner is None:
                raise
            logger.info("Reusing conversation %s created concurrently for %s", winner.id, key)
            return winner

        self.db.commit()
        logger.info(
            "Created conversation %s between users %s and %s",
            conversation.id,
            user_id,
            recipient_id,
        )
        return conversation

    def _get_participating_conversation(
        self, user_id: int, conversation_id: int
    ) -> Conversation | None:
        conversation: Conversation | None = (
            self.db.query(Conversation)
            .join(
                ConversationParticipant,
                ConversationParticipant.conversation_id == Conversation.id,
            )
            .filter(
                Conversation.id == conversation_id,
                ConversationParticipant.user_id == user_id,
            )
            .first()
        )
        return conversation

    def _get_visible_message(self, user_id: int, message_id: int) -> Message | None:
        message: Message | None = (
            self.db.query(Message)
            .join(
                ConversationParticipant,
                ConversationParticipant.conversation_id == Message.conversation_id,
            )
            .filter(
                Message.id == message_id,
                Message.is_deleted.is_(False),
                ConversationParticipant.user_id == user_id,
            )
            .first()
        )
        return message

    @staticmethod
    def _last_message_column(column: Any) -> Any:
        # Correlated subquery rather than a join, so each conversation stays one row
        return (
            select(column)
            .where(Message.conversation_id == Conversation.id, Message.is_deleted.is_(False))
            .order_by(Message.created_at.desc(), Message.id.desc())
            .limit(1)
            .correlate(Conversation)
            .scalar_subquery()
        )

    @staticmethod
    def _participant_count_column() -> Any:
        members = aliased(ConversationParticipant)
        return (
            select(func.count(members.id))
            .where(members.conversation_id == Conversation.id)
            .correlate(Conversation)
            .scalar_subquery()
        )

    @staticmethod
    def _other_participant_column(user_id: int, column: Any) -> Any:
        others = aliased(ConversationParticipant)
        return (
            select(column)
            .select_from(others)
            .join(User, User.id == others.user_id)
            .where(others.conversation_id == Conversation.id, others.user_id != user_id)
            .limit(1)
            .correlate(Conversation)
            .scalar_subquery()
        )

    @staticmethod
    def _summary_fields(conversation: Conversation) -> dict[str, Any]:
        return {
            "id": conversation.id,
            "title": conversation.title,
            "is_group": conversation.is_group,
            "created_by_id": conversation.created_by_id,
            "pitch_id": conversation.pitch_id,
            "last_message_at": conversation.last_message_at,
            "created_at": conversation.created_at,
            "updated_at": conversation.updated_at,
        }

    @staticmethod
    def _message_response(
        message: Message, conversation_title: str | None = None
    ) -> MessageResponse:
        sender = message.sender
        return MessageResponse(
            id=message.id,
            conversation_id=message.conversation_id,
            sender_id=message.sender_id,
            content=message.content,
            message_type=message.message_type,
            created_at=message.created_at,
            sender_name=sender.display_name if sender else None,
            sender_avatar=sender.avatar_url if sender else None,
            conversation_title=conversation_title,
        )
