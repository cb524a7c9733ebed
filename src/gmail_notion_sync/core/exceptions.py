"""Custom exceptions for Gmail Notion Sync."""


class GmailSyncError(Exception):
    """Base exception for all Gmail Notion Sync errors."""


class AuthenticationError(GmailSyncError):
    """Failed to authenticate with a Google API."""


class UpstreamError(GmailSyncError):
    """A Gmail, Drive or Notion API call failed."""


class RateLimitError(UpstreamError):
    """Google API rate limit exceeded and retries exhausted."""


class ParseError(GmailSyncError):
    """Input is not a Gmail message at all."""


class MalformedInputError(GmailSyncError):
    """A MIME payload could not be decoded."""


class ConversionError(GmailSyncError):
    """Failed to produce page content for an email."""
