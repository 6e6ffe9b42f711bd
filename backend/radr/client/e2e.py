"""Group end-to-end encryption: AES-256-GCM with one shared key per group.

Envelope format is ``base64(nonce) + ":" + base64(ciphertext || tag)`` with a
fresh 12-byte nonce per message. The server relays envelopes untouched.
"""
import base64
import binascii
import logging
import os
from typing import Any, Iterable, Optional, Protocol

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from radr.client.keystore import MemoryKeyStore

logger = logging.getLogger(__name__)

KEY_SIZE = 32
NONCE_SIZE = 12
TAG_SIZE = 16

KEY_NOT_AVAILABLE = "[Encrypted - Key not available]"
DECRYPTION_FAILED = "[Decryption failed]"


class KeyNotFound(Exception):
    """No key for the group in memory or in the durable store."""


class DecryptionFailure(Exception):
    """Envelope is malformed or failed authentication."""


class KeyStore(Protocol):
    def get(self, group_id: str) -> Optional[str]: ...

    def put(self, group_id: str, exported_key: str) -> None: ...

    def delete(self, group_id: str) -> None: ...


def _b64decode(value: str) -> bytes:
    return base64.b64decode(value.encode("ascii"), validate=True)


def _decode_key(exported_key: str) -> bytes:
    try:
        raw = _b64decode(exported_key)
    except (binascii.Error, ValueError, UnicodeEncodeError) as exc:
        raise ValueError("Group key is not valid base64") from exc
    if len(raw) != KEY_SIZE:
        raise ValueError(f"Group key must be {KEY_SIZE} bytes, got {len(raw)}")
    return raw


class GroupKeyring:
    """Holds group keys and encrypts/decrypts message envelopes.

    Lookups go memory cache, then the durable store; there is no network
    fetch here. Keys reach the keyring either from ``generate_group_key`` on
    the creating device or from ``import_group_key`` after a group listing.
    """

    def __init__(self, store: Optional[KeyStore] = None):
        self.store = store if store is not None else MemoryKeyStore()
        self._cache: dict[str, AESGCM] = {}

    def _remember(self, group_id: str, raw: bytes, exported_key: str) -> None:
        self._cache[group_id] = AESGCM(raw)
        try:
            self.store.put(group_id, exported_key)
        except OSError:
            logger.warning("Failed to persist key for group %s", group_id, exc_info=True)

    def generate_group_key(self, group_id: str) -> str:
        """Create, cache and persist a new 256-bit key; returns it base64-encoded."""
        raw = AESGCM.generate_key(bit_length=KEY_SIZE * 8)
        exported = base64.b64encode(raw).decode("ascii")
        self._remember(group_id, raw, exported)
        return exported

    def import_group_key(self, group_id: str, exported_key: str) -> None:
        """Install a key received from the server. Re-importing overwrites."""
        raw = _decode_key(exported_key)
        self._remember(group_id, raw, exported_key)

    def _key_for(self, group_id: str) -> Optional[AESGCM]:
        cached = self._cache.get(group_id)
        if cached is not None:
            return cached
        try:
            exported = self.store.get(group_id)
        except OSError:
            logger.warning("Failed to read stored key for group %s", group_id, exc_info=True)
            return None
        if not exported:
            return None
        try:
            aead = AESGCM(_decode_key(exported))
        except ValueError:
            logger.warning("Stored key for group %s is corrupt; ignoring it", group_id)
            return None
        self._cache[group_id] = aead
        return aead

    def has_group_key(self, group_id: str) -> bool:
        return self._key_for(group_id) is not None

    def remove_group_key(self, group_id: str) -> None:
        self._cache.pop(group_id, None)
        try:
            self.store.delete(group_id)
        except OSError:
            logger.warning("Failed to remove stored key for group %s", group_id, exc_info=True)

    def encrypt_message(self, group_id: str, plaintext: str) -> str:
        """Seal ``plaintext`` into an envelope.

        Raises ``KeyNotFound`` when the group has no key, and ``ValueError``
        (a ``UnicodeEncodeError``) for text that is not valid UTF-8, such as
        a lone surrogate.
        """
        aead = self._key_for(group_id)
        if aead is None:
            raise KeyNotFound(f"Group encryption key not found for {group_id}")
        nonce = os.urandom(NONCE_SIZE)
        sealed = aead.encrypt(nonce, plaintext.encode("utf-8"), None)
        return base64.b64encode(nonce).decode("ascii") + ":" + base64.b64encode(sealed).decode("ascii")

    def open_envelope(self, group_id: str, envelope: str) -> str:
        """Strict decrypt: raises ``KeyNotFound`` or ``DecryptionFailure``."""
        aead = self._key_for(group_id)
        if aead is None:
            raise KeyNotFound(f"Group encryption key not found for {group_id}")

        nonce_b64, sep, sealed_b64 = (envelope or "").partition(":")
        if not sep or not nonce_b64 or not sealed_b64:
            raise DecryptionFailure("Malformed envelope")
        try:
            nonce = _b64decode(nonce_b64)
            sealed = _b64decode(sealed_b64)
        except (binascii.Error, ValueError, UnicodeEncodeError) as exc:
            raise DecryptionFailure("Envelope is not valid base64") from exc
        if len(nonce) != NONCE_SIZE or len(sealed) < TAG_SIZE:
            raise DecryptionFailure("Envelope has the wrong shape")

        try:
            plaintext = aead.decrypt(nonce, sealed, None)
        except InvalidTag as exc:
            raise DecryptionFailure("Authentication failed") from exc
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecryptionFailure("Plaintext is not UTF-8") from exc

    def decrypt_message(self, group_id: str, envelope: str) -> str:
        """Lenient decrypt that never raises; failures become display sentinels."""
        try:
            return self.open_envelope(group_id, envelope)
        except KeyNotFound:
            return KEY_NOT_AVAILABLE
        except DecryptionFailure as exc:
            logger.warning("Could not decrypt message in group %s: %s", group_id, exc)
            return DECRYPTION_FAILED

    def decrypt_messages(self, group_id: str, messages: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
        """Decrypt every ``text`` message independently; system messages pass through."""
        result = []
        for message in messages:
            if message.get("type") == "text":
                message = {**message, "content": self.decrypt_message(group_id, message.get("content", ""))}
            result.append(message)
        return result
