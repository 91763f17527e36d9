from datetime import UTC, datetime, timedelta

import pytest

from pitchey.core.exceptions import InvalidRecipientError, NotFoundError, ValidationError
from pitchey.messaging.models.conversation import Conversation
from pitchey.messaging.models.conversation_participant import ConversationParticipant
from pitchey.messaging.models.message import Message
from pitchey.messaging.models.message_read_receipt import MessageReadReceipt
from pitchey.messaging.services.conversation_store import ConversationStore
from tests.utils.factories import (
    create_conversation_factory,
    create_message_factory,
    create_user_factory,
)

START = datetime(2026, 5, 4, 9, 0, tzinfo=UTC)


class TickingClock:
    """Clock advancing one minute per call, so message order is deterministic."""

    def __init__(self, start: datetime = START) -> None:
        self.current = start

    def __call__(self) -> datetime:
        self.current += timedelta(minutes=1)
        return self.current


@pytest.fixture
def store(db_session):
    return ConversationStore(db_session, clock=TickingClock())


@pytest.fixture
def outsider(db_session):
    return create_user_factory(db_session, user_type="production", name="Olive Outsider")


class TestFindOrCreateConversation:
    def test_should_return_same_conversation_on_repeat_calls(self, store, creator, investor):
        first = store.find_or_create_conversation(creator.id, investor.id)
        second = store.find_or_create_conversation(creator.id, investor.id)

        assert first.id == second.id

    def test_should_return_same_conversation_for_either_side(self, store, creator, investor):
        first = store.find_or_create_conversation(creator.id, investor.id)
        reverse = store.find_or_create_conversation(investor.id, creator.id)

        assert first.id == reverse.id

    def test_should_add_both_participants(self, store, db_session, creator, investor):
        conversation = store.find_or_create_conversation(creator.id, investor.id, pitch_id=12)

        member_ids = {
            p.user_id
            for p in db_session.query(ConversationParticipant).filter_by(
                conversation_id=conversation.id
            )
        }
        assert member_ids == {creator.id, investor.id}
        assert conversation.is_group is False
        assert conversation.pitch_id == 12
        assert conversation.direct_key == "7:9"

    def test_should_reject_conversation_with_self(self, store, creator):
        with pytest.raises(InvalidRecipientError) as exc_info:
            store.find_or_create_conversation(creator.id, creator.id)

        assert exc_info.value.error_code == "INVALID_RECIPIENT"
        assert exc_info.value.status_code == 400

    def test_should_reject_missing_recipient(self, store, creator):
        with pytest.raises(InvalidRecipientError):
            store.find_or_create_conversation(creator.id, None)

    def test_should_reject_unknown_recipient(self, store, creator):
        with pytest.raises(NotFoundError):
            store.find_or_create_conversation(creator.id, 999)

    def test_should_reuse_conversation_created_concurrently(
        self, store, db_session, creator, investor
    ):
        # Row committed by a competing request before its participants were added
        winner = Conversation(is_group=False, created_by_id=investor.id, direct_key="7:9")
        db_session.add(winner)
        db_session.commit()
        winner_id = winner.id

        conversation = store.find_or_create_conversation(creator.id, investor.id)

        assert conversation.id == winner_id
        assert db_session.query(Conversation).count() == 1

    def test_should_ignore_group_conversations(
        self, store, db_session, creator, investor, outsider
    ):
        group = create_conversation_factory(
            db_session, [creator, investor, outsider], title="Slate review"
        )

        direct = store.find_or_create_conversation(creator.id, investor.id)

        assert direct.id != group.id


class TestSendMessage:
    def test_should_create_conversation_for_first_message(
        self, store, db_session, creator, investor
    ):
        message = store.send_message(creator.id, "Hello", recipient_id=investor.id)

        assert message.content == "Hello"
        assert message.sender_id == creator.id
        assert message.sender_name == "Casey Creator"
        assert message.message_type == "text"
        conversation = db_session.get(Conversation, message.conversation_id)
        assert conversation.last_message_at is not None

    def test_should_post_into_existing_conversation(self, store, db_session, creator, investor):
        conversation = create_conversation_factory(db_session, [creator, investor])

        message = store.send_message(
            investor.id, "Reply", conversation_id=conversation.id, message_type="system"
        )

        assert message.conversation_id == conversation.id
        assert message.message_type == "system"

    def test_should_trim_content(self, store, creator, investor):
        message = store.send_message(creator.id, "  Hello there \n", recipient_id=investor.id)

        assert message.content == "Hello there"

    def test_should_reject_blank_content(self, store, db_session, creator, investor):
        with pytest.raises(ValidationError):
            store.send_message(creator.id, "   ", recipient_id=investor.id)

        assert db_session.query(Conversation).count() == 0

    def test_should_require_conversation_or_recipient(self, store, creator):
        with pytest.raises(InvalidRecipientError):
            store.send_message(creator.id, "Hello")

    def test_should_hide_conversation_of_other_users(
        self, store, db_session, creator, investor, outsider
    ):
        conversation = create_conversation_factory(db_session, [creator, investor])

        with pytest.raises(NotFoundError):
            store.send_message(outsider.id, "Let me in", conversation_id=conversation.id)

        assert db_session.query(Message).count() == 0


class TestDeleteMessage:
    def test_should_soft_delete_own_message(self, store, db_session, creator, investor):
        conversation = create_conversation_factory(db_session, [creator, investor])
        message = create_message_factory(db_session, conversation, creator, content="Oops")
        message_id = message.id

        assert store.delete_message(creator.id, message_id) is True

        _, messages = store.get_conversation_by_id(creator.id, conversation.id)
        assert message_id not in [m.id for m in messages]

        row = db_session.get(Message, message_id)
        assert row is not None
        assert row.is_deleted is True
        assert row.deleted_at is not None

    def test_should_leave_message_of_other_sender_untouched(
        self, store, db_session, creator, investor
    ):
        conversation = create_conversation_factory(db_session, [creator, investor])
        message = create_message_factory(db_session, conversation, investor, content="Mine")
        message_id = message.id

        assert store.delete_message(creator.id, message_id) is False

        for user in (creator, investor):
            _, messages = store.get_conversation_by_id(user.id, conversation.id)
            assert [m.id for m in messages] == [message_id]
        assert db_session.get(Message, message_id).is_deleted is False

    def test_should_report_nothing_deleted_for_unknown_message(self, store, creator):
        assert store.delete_message(creator.id, 12345) is False


class TestMarkMessageAsRead:
    def test_should_record_receipt_once(self, store, db_session, creator, investor):
        conversation = create_conversation_factory(db_session, [creator, investor])
        message = create_message_factory(db_session, conversation, creator)

        assert store.mark_message_as_read(investor.id, message.id) is True
        assert store.mark_message_as_read(investor.id, message.id) is False

        receipts = db_session.query(MessageReadReceipt).filter_by(message_id=message.id).all()
        assert [r.user_id for r in receipts] == [investor.id]

    def test_should_ignore_message_outside_users_conversations(
        self, store, db_session, creator, investor, outsider
    ):
        conversation = create_conversation_factory(db_session, [creator, investor])
        message = create_message_factory(db_session, conversation, creator)

        assert store.mark_message_as_read(outsider.id, message.id) is False
        assert db_session.query(MessageReadReceipt).count() == 0


class TestGetConversations:
    def test_should_include_preview_and_other_participant(self, store, creator, investor):
        store.send_message(creator.id, "Hello", recipient_id=investor.id)

        conversations = store.get_conversations(creator.id)

        assert len(conversations) == 1
        item = conversations[0]
        assert item.last_message == "Hello"
        assert item.last_message_time is not None
        assert item.participant_name == "Ivy Investor"
        assert item.participant_type == "investor"
        assert item.participant_count == 2

    def test_should_order_by_latest_activity(self, store, creator, investor, outsider):
        store.send_message(creator.id, "First thread", recipient_id=investor.id)
        store.send_message(creator.id, "Second thread", recipient_id=outsider.id)
        store.send_message(investor.id, "Bumped", recipient_id=creator.id)

        conversations = store.get_conversations(creator.id)

        assert [c.last_message for c in conversations] == ["Bumped", "Second thread"]

    def test_should_skip_deleted_message_in_preview(self, store, creator, investor):
        store.send_message(creator.id, "Keep me", recipient_id=investor.id)
        latest = store.send_message(creator.id, "Delete me", recipient_id=investor.id)
        store.delete_message(creator.id, latest.id)

        conversations = store.get_conversations(creator.id)

        assert conversations[0].last_message == "Keep me"

    def test_should_leave_participant_fields_empty_for_groups(
        self, store, db_session, creator, investor, outsider
    ):
        create_conversation_factory(
            db_session, [creator, investor, outsider], title="Slate review"
        )

        conversations = store.get_conversations(creator.id)

        assert len(conversations) == 1
        assert conversations[0].title == "Slate review"
        assert conversations[0].is_group is True
        assert conversations[0].participant_count == 3
        assert conversations[0].participant_name is None
        assert conversations[0].participant_type is None

    def test_should_only_list_users_conversations(self, store, creator, investor, outsider):
        store.send_message(creator.id, "Private", recipient_id=investor.id)

        assert store.get_conversations(outsider.id) == []


class TestGetConversationById:
    def test_should_return_messages_oldest_first(self, store, creator, investor):
        first = store.send_message(creator.id, "One", recipient_id=investor.id)
        store.send_message(investor.id, "Two", conversation_id=first.conversation_id)
        store.send_message(creator.id, "Three", conversation_id=first.conversation_id)

        conversation, messages = store.get_conversation_by_id(investor.id, first.conversation_id)

        assert conversation.id == first.conversation_id
        assert [m.content for m in messages] == ["One", "Two", "Three"]

    def test_should_hide_conversation_from_non_participant(
        self, store, db_session, creator, investor, outsider
    ):
        conversation = create_conversation_factory(db_session, [creator, investor])

        with pytest.raises(NotFoundError):
            store.get_conversation_by_id(outsider.id, conversation.id)

    def test_should_report_missing_conversation(self, store, creator):
        with pytest.raises(NotFoundError):
            store.get_conversation_by_id(creator.id, 4040)


class TestGetMessages:
    def test_should_list_inbox_newest_first(self, store, creator, investor, outsider):
        store.send_message(creator.id, "To investor", recipient_id=investor.id)
        store.send_message(outsider.id, "From outsider", recipient_id=creator.id)
        store.send_message(investor.id, "Not mine", recipient_id=outsider.id)

        messages = store.get_messages(creator.id)

        assert [m.content for m in messages] == ["From outsider", "To investor"]

    def test_should_paginate(self, store, creator, investor):
        for text in ("a", "b", "c"):
            store.send_message(creator.id, text, recipient_id=investor.id)

        page = store.get_messages(creator.id, limit=2, offset=1)

        assert [m.content for m in page] == ["b", "a"]

    def test_should_return_single_visible_message(self, store, creator, investor, outsider):
        sent = store.send_message(creator.id, "Hello", recipient_id=investor.id)

        assert store.get_message_by_id(investor.id, sent.id).content == "Hello"
        with pytest.raises(NotFoundError):
            store.get_message_by_id(outsider.id, sent.id)
