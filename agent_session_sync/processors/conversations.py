"""Conversation history sync processor."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from ..api.client import ApiClientConfig
from ..api.conversations import DEFAULT_ASSISTANT_ID, ConversationApiClient
from ..config import conversation_path
from .base import ProcessingContext, SessionSnapshot
from .queue import PayloadRecord
from .sync_base import PendingQueueProcessor, SendOutcome


class ConversationSyncProcessor(PendingQueueProcessor):
    """Drains ``{session_id}_conversation.jsonl`` into the conversations API.

    Payload shape: ``{"conversation_id": str, "history": [...]}``.
    """

    section = "conversations"
    noun = "conversations"

    def __init__(self, *args: Any, assistant_id: str = DEFAULT_ASSISTANT_ID, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.assistant_id = assistant_id

    @property
    def name(self) -> str:
        return "conversation-sync"

    @property
    def priority(self) -> int:
        return 2

    def queue_path(self, sessions_dir: Path, session_id: str) -> Path:
        return conversation_path(sessions_dir, session_id)

    def create_client(self, context: ProcessingContext) -> ConversationApiClient:
        return ConversationApiClient(ApiClientConfig.from_context(context))

    async def send(
        self, client: ConversationApiClient, record: PayloadRecord, snapshot: SessionSnapshot
    ) -> SendOutcome:
        conversation_id = record.payload.get("conversation_id")
        history = record.payload.get("history") or []
        if not conversation_id:
            return SendOutcome(success=False, message="Payload has no conversation_id")

        response = await client.upsert_conversation(
            conversation_id,
            history,
            assistant_id=self.assistant_id,
            folder=snapshot.agent_display_name,
        )
        if not response.success:
            return SendOutcome(success=False, message=response.message)

        return SendOutcome(
            success=True,
            message=response.message,
            items=len(history),
            response={
                "synced_count": len(history),
                "new_messages": response.new_messages,
                "total_messages": response.total_messages,
            },
        )

    def build_sync_updates(
        self,
        sent: list[tuple[PayloadRecord, SendOutcome]],
        failures: list[tuple[PayloadRecord, str]],
        synced_at: int,
    ) -> dict[str, Any]:
        updates: dict[str, Any] = {
            "total_sync_attempts": 1,
            "last_sync_error": failures[-1][1] if failures else None,
        }
        if not sent:
            return updates

        indices = [i for record, _ in sent for i in (record.history_indices or [])]
        if indices:
            updates["last_synced_history_index"] = max(indices)
        updates["conversation_id"] = sent[0][0].payload.get("conversation_id")
        updates["total_messages_synced"] = sum(outcome.items for _, outcome in sent)
        updates["last_sync_at"] = synced_at
        return updates
