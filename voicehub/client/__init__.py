"""Async client for the VoiceHub API with cached, retrying queries."""

from voicehub.client.api import ApiClientError, VoiceHubClient
from voicehub.client.hooks import Query, QueryState, QueryStatus
from voicehub.client.query_cache import QueryCache

__all__ = [
    "ApiClientError",
    "Query",
    "QueryCache",
    "QueryState",
    "QueryStatus",
    "VoiceHubClient",
]
