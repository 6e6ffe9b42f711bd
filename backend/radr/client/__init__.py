"""Client-side pieces of Radr: the group keyring and the HTTP API client.

Nothing in this package is imported by the server; keys only ever exist
here and in the ``encryption_key`` column handed out by ``list_groups``.
"""
from radr.client.api import ApiError, GroupChatView, RadrClient
from radr.client.e2e import DecryptionFailure, GroupKeyring, KeyNotFound
from radr.client.keystore import FileKeyStore, MemoryKeyStore

__all__ = [
    "ApiError",
    "DecryptionFailure",
    "FileKeyStore",
    "GroupChatView",
    "GroupKeyring",
    "KeyNotFound",
    "MemoryKeyStore",
    "RadrClient",
]
