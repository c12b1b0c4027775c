"""Conversation history upload.

PUT /v1/conversations/{conversation_id}/history is an idempotent upsert:
resending history the server already has only reports fewer new messages.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .client import ApiClient, ApiClientConfig

logger = logging.getLogger(__name__)

CONVERSATIONS_PATH = "/v1/conversations/{conversation_id}/history"

# Assistant that imported agent conversations are attached to
DEFAULT_ASSISTANT_ID = "5a430368-9e91-4564-be20-989803bf4da2"


@dataclass
class ConversationSyncResponse:
    """Server echo of one conversation upsert."""

    success: bool
    message: str
    conversation_id: str | None = None
    new_messages: int = 0
    total_messages: int = 0
    created: bool = False
    status_code: int | None = None


class ConversationApiClient:
    """Sends conversation history to the backend."""

    def __init__(self, config: ApiClientConfig) -> None:
        self.client = ApiClient(config, name="ConversationApiClient")

    async def upsert_conversation(
        self,
        conversation_id: str,
        history: list[dict[str, Any]],
        assistant_id: str = DEFAULT_ASSISTANT_ID,
        folder: str = "Agent Imports",
    ) -> ConversationSyncResponse:
        """Upsert the history of one conversation.

        Args:
            conversation_id: Conversation to create or extend
            history: History entries in backend format
            assistant_id: Assistant the conversation belongs to
            folder: UI folder, usually the agent display name

        Returns:
            ConversationSyncResponse; never raises on HTTP failure
        """
        path = CONVERSATIONS_PATH.format(conversation_id=conversation_id)
        body = {"assistant_id": assistant_id, "folder": folder, "history": history}

        response = await self.client.request(
            "PUT",
            path,
            body,
            dry_run_data={
                "conversation_id": conversation_id,
                "new_messages": len(history),
                "total_messages": len(history),
                "created": True,
            },
        )

        if not response.success:
            return ConversationSyncResponse(
                success=False,
                message=response.message,
                conversation_id=conversation_id,
                status_code=response.status_code,
            )

        data = response.data
        result = ConversationSyncResponse(
            success=True,
            message=response.message,
            conversation_id=data.get("conversation_id", conversation_id),
            new_messages=data.get("new_messages", 0),
            total_messages=data.get("total_messages", 0),
            created=bool(data.get("created", False)),
            status_code=response.status_code,
        )
        logger.debug(
            f"Conversation {result.conversation_id} synced: "
            f"new={result.new_messages} total={result.total_messages} created={result.created}"
        )
        return result
