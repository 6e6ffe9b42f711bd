"""Tests for the client-side group keyring and key stores."""
import base64
import json

import pytest

from radr.client.e2e import (
    DECRYPTION_FAILED, KEY_NOT_AVAILABLE, DecryptionFailure, GroupKeyring, KeyNotFound,
)
from radr.client.keystore import FileKeyStore, MemoryKeyStore


@pytest.fixture
def keyring():
    ring = GroupKeyring(MemoryKeyStore())
    ring.generate_group_key("g1")
    return ring


class TestRoundTrip:

    @pytest.mark.parametrize("plaintext", ["hello", "", "héllo wörld ✈️ 你好", "x" * 10_000])
    def test_encrypt_then_decrypt(self, keyring, plaintext):
        envelope = keyring.encrypt_message("g1", plaintext)
        assert keyring.decrypt_message("g1", envelope) == plaintext

    def test_envelope_shape(self, keyring):
        nonce_b64, sealed_b64 = keyring.encrypt_message("g1", "hi").split(":")
        assert len(base64.b64decode(nonce_b64)) == 12
        # two bytes of plaintext plus the 16-byte tag
        assert len(base64.b64decode(sealed_b64)) == 2 + 16

    def test_nonces_never_repeat(self, keyring):
        nonces = {keyring.encrypt_message("g1", "same text").split(":")[0] for _ in range(1000)}
        assert len(nonces) == 1000

    def test_same_plaintext_gives_different_envelopes(self, keyring):
        assert keyring.encrypt_message("g1", "a") != keyring.encrypt_message("g1", "a")


class TestKeys:

    def test_generated_key_is_32_bytes(self):
        ring = GroupKeyring()
        exported = ring.generate_group_key("g")
        assert len(base64.b64decode(exported)) == 32

    def test_import_rejects_bad_keys(self):
        ring = GroupKeyring()
        with pytest.raises(ValueError):
            ring.import_group_key("g", "not base64!!")
        with pytest.raises(ValueError):
            ring.import_group_key("g", base64.b64encode(b"short").decode())
        assert not ring.has_group_key("g")

    def test_reimport_overwrites(self):
        ring = GroupKeyring()
        first = ring.generate_group_key("g")
        other = GroupKeyring()
        second = other.generate_group_key("g")
        ring.import_group_key("g", second)
        assert ring.decrypt_message("g", other.encrypt_message("g", "hey")) == "hey"
        assert first != second

    def test_has_and_remove(self, keyring):
        assert keyring.has_group_key("g1")
        keyring.remove_group_key("g1")
        assert not keyring.has_group_key("g1")
        assert keyring.store.get("g1") is None

    def test_encrypt_rejects_lone_surrogate(self, keyring):
        with pytest.raises(ValueError):
            keyring.encrypt_message("g1", "broken \ud800 text")

    def test_encrypt_without_key_raises(self):
        with pytest.raises(KeyNotFound):
            GroupKeyring().encrypt_message("missing", "hi")

    def test_cross_device_decrypt(self):
        alice = GroupKeyring()
        bob = GroupKeyring()
        bob.import_group_key("g", alice.generate_group_key("g"))
        assert bob.decrypt_message("g", alice.encrypt_message("g", "meet at 8")) == "meet at 8"


class TestDecryptFailures:

    def test_missing_key_sentinel(self):
        assert GroupKeyring().decrypt_message("nope", "abc:def") == KEY_NOT_AVAILABLE

    @pytest.mark.parametrize("envelope", ["", "no-separator", ":", "abc:", ":abc", "!!!:???", "AAAA:AAAA"])
    def test_malformed_envelope_sentinel(self, keyring, envelope):
        assert keyring.decrypt_message("g1", envelope) == DECRYPTION_FAILED

    def test_tampered_ciphertext_sentinel(self, keyring):
        nonce_b64, sealed_b64 = keyring.encrypt_message("g1", "secret").split(":")
        sealed = bytearray(base64.b64decode(sealed_b64))
        sealed[0] ^= 0x01
        tampered = nonce_b64 + ":" + base64.b64encode(bytes(sealed)).decode()
        assert keyring.decrypt_message("g1", tampered) == DECRYPTION_FAILED
        with pytest.raises(DecryptionFailure):
            keyring.open_envelope("g1", tampered)

    def test_wrong_key_sentinel(self, keyring):
        other = GroupKeyring()
        other.generate_group_key("g1")
        assert keyring.decrypt_message("g1", other.encrypt_message("g1", "x")) == DECRYPTION_FAILED

    def test_batch_isolates_failures(self, keyring):
        messages = [
            {"id": 1, "type": "text", "content": keyring.encrypt_message("g1", "one")},
            {"id": 2, "type": "text", "content": "garbage"},
            {"id": 3, "type": "arrival", "content": "Ann has entered Cafe"},
            {"id": 4, "type": "text", "content": keyring.encrypt_message("g1", "four")},
        ]
        out = keyring.decrypt_messages("g1", messages)
        assert [m["content"] for m in out] == ["one", DECRYPTION_FAILED, "Ann has entered Cafe", "four"]
        # input is not mutated
        assert messages[0]["content"] != "one"


class TestFileKeyStore:

    def test_keys_survive_a_new_keyring(self, tmp_path):
        path = tmp_path / "keys.json"
        first = GroupKeyring(FileKeyStore(path))
        envelope_key = first.generate_group_key("g")
        envelope = first.encrypt_message("g", "persisted")

        second = GroupKeyring(FileKeyStore(path))
        assert second.decrypt_message("g", envelope) == "persisted"
        assert json.loads(path.read_text())["g"] == envelope_key

    def test_delete_removes_entry(self, tmp_path):
        store = FileKeyStore(tmp_path / "keys.json")
        store.put("a", "k1")
        store.put("b", "k2")
        store.delete("a")
        assert store.get("a") is None
        assert store.get("b") == "k2"

    def test_corrupt_file_reads_as_empty(self, tmp_path):
        path = tmp_path / "keys.json"
        path.write_text("{not json")
        ring = GroupKeyring(FileKeyStore(path))
        assert not ring.has_group_key("g")
        assert ring.decrypt_message("g", "a:b") == KEY_NOT_AVAILABLE

    def test_corrupt_stored_key_is_ignored(self, tmp_path):
        path = tmp_path / "keys.json"
        path.write_text(json.dumps({"g": "bm90IGEga2V5"}))
        assert not GroupKeyring(FileKeyStore(path)).has_group_key("g")

    def test_default_path_is_under_user_data_dir(self):
        assert FileKeyStore().path.name == "radr_group_keys.json"
