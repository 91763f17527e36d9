from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from pitchey.auth.dependencies import get_current_user
from pitchey.auth.schemas.user import AuthenticatedUser
from pitchey.core.constants import INBOX_PAGE_SIZE, MAX_INBOX_PAGE_SIZE
from pitchey.core.schemas import ApiResponse, ErrorResponse
from pitchey.db.session import get_db
from pitchey.messaging.schemas.conversation import (
    ConversationCreate,
    ConversationListData,
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
from pitchey.messaging.services.messaging_service import MessagingService

router = APIRouter(
    responses={
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    }
)


def get_messaging_service(db: Session = Depends(get_db)) -> MessagingService:
    return MessagingService(ConversationStore(db))


@router.post("/messages", response_model=ApiResponse[MessageData], status_code=201)
def send_message(
    data: MessageCreate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
) -> ApiResponse[MessageData]:
    return service.send_message(current_user.id, data)


@router.get("/messages", response_model=ApiResponse[MessageListData])
def list_messages(
    limit: int = Query(INBOX_PAGE_SIZE, ge=1, le=MAX_INBOX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
) -> ApiResponse[MessageListData]:
    return service.get_messages(current_user.id, limit=limit, offset=offset)


@router.get("/messages/{message_id}", response_model=ApiResponse[MessageData])
def get_message(
    message_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
) -> ApiResponse[MessageData]:
    return service.get_message_by_id(current_user.id, message_id)


@router.post("/messages/{message_id}/read", response_model=ApiResponse[None])
def mark_as_read(
    message_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
) -> ApiResponse[None]:
    return service.mark_message_as_read(current_user.id, message_id)


@router.delete("/messages/{message_id}", response_model=ApiResponse[None])
def delete_message(
    message_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
) -> ApiResponse[None]:
    return service.delete_message(current_user.id, message_id)


@router.get("/conversations", response_model=ApiResponse[ConversationListData])
def list_conversations(
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
) -> ApiResponse[ConversationListData]:
    return service.get_conversations(current_user.id)


@router.post("/conversations", response_model=ApiResponse[ConversationRefData])
def find_or_create_conversation(
    data: ConversationCreate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
) -> ApiResponse[ConversationRefData]:
    return service.find_or_create_conversation(current_user.id, data)


@router.get("/conversations/{conversation_id}", response_model=ApiResponse[ConversationDetailData])
def get_conversation(
    conversation_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
) -> ApiResponse[ConversationDetailData]:
    return service.get_conversation_by_id(current_user.id, conversation_id)


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=ApiResponse[MessageData],
    status_code=201,
)
def send_conversation_message(
    conversation_id: int,
    data: ConversationMessageCreate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
) -> ApiResponse[MessageData]:
    return service.send_message_to_conversation(current_user.id, conversation_id, data)
