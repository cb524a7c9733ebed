"""Gmail Notion Sync - Parse labelled Gmail messages and file them as Notion pages."""

from gmail_notion_sync.core.models import (
    AttachmentDescriptor,
    AttachmentLink,
    ContainerPart,
    LeafPart,
    MessageStub,
    ParsedEmail,
    SyncProgress,
)
from gmail_notion_sync.core.parser import GmailParser
from gmail_notion_sync.core.reconciler import partition_attachments, reconcile_markdown
from gmail_notion_sync.pipeline.syncer import EmailSyncer

__all__ = [
    "AttachmentDescriptor",
    "AttachmentLink",
    "ContainerPart",
    "EmailSyncer",
    "GmailParser",
    "LeafPart",
    "MessageStub",
    "ParsedEmail",
    "SyncProgress",
    "partition_attachments",
    "reconcile_markdown",
]
