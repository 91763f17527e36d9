"""Application-wide constants.

This module centralizes magic numbers shared across modules. For
environment-specific configuration, see config.py.
"""

# =============================================================================
# Messaging
# =============================================================================

# Messages returned with a conversation, oldest first
CONVERSATION_MESSAGES_LIMIT: int = 50

# Default and maximum page size for the message inbox
INBOX_PAGE_SIZE: int = 50
MAX_INBOX_PAGE_SIZE: int = 100

MESSAGE_MAX_LENGTH: int = 5000

MESSAGE_TYPES: tuple[str, ...] = ("text", "image", "file", "system")
DEFAULT_MESSAGE_TYPE: str = "text"

# =============================================================================
# Sessions
# =============================================================================

SESSION_CACHE_KEY_PREFIX: str = "session:"

# Bytes of entropy in generated session ids and tokens
SESSION_TOKEN_BYTES: int = 32
