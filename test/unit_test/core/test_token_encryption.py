"""
Unit tests for encrypted invitation / reset link tokens.
"""

import base64
import time

import pytest

from vendors_manager.core.token_encryption import (
    TokenDecryptionError,
    build_token_data,
    decrypt_token,
    encrypt_token,
    generate_random_token,
    get_token_expiry_hours,
    is_token_expired,
)

HOUR_MS = 60 * 60 * 1000


class TestEncryptDecrypt:
    def test_payload_survives_encryption(self):
        data = build_token_data("jane@example.com", 12, "invitation")
        assert decrypt_token(encrypt_token(data)) == data

    def test_token_is_url_safe(self):
        token = encrypt_token(build_token_data("jane@example.com", 12, "reset"))
        assert all(c.isalnum() or c in "-_" for c in token)

    def test_packed_format_is_iv_tag_ciphertext(self):
        token = encrypt_token(build_token_data("jane@example.com", 12, "reset"))
        packed = base64.urlsafe_b64decode(token + "=" * (-len(token) % 4)).decode()
        iv, tag, ciphertext = packed.split(":")
        assert len(bytes.fromhex(iv)) == 16
        assert len(bytes.fromhex(tag)) == 16
        assert ciphertext

    def test_same_payload_encrypts_differently(self):
        data = build_token_data("jane@example.com", 12, "reset")
        assert encrypt_token(data) != encrypt_token(data)

    def test_wrong_secret_is_rejected(self):
        token = encrypt_token(build_token_data("jane@example.com", 12, "reset"), secret="one")
        with pytest.raises(TokenDecryptionError):
            decrypt_token(token, secret="two")

    @pytest.mark.parametrize("token", ["", "not-a-token", "Zm9vOmJhcjpiYXo"])
    def test_garbage_is_rejected(self, token):
        with pytest.raises(TokenDecryptionError):
            decrypt_token(token)

    def test_tampered_ciphertext_is_rejected(self):
        token = encrypt_token(build_token_data("jane@example.com", 12, "reset"))
        packed = base64.urlsafe_b64decode(token + "=" * (-len(token) % 4)).decode()
        iv, tag, ciphertext = packed.split(":")
        flipped = ("0" if ciphertext[0] != "0" else "1") + ciphertext[1:]
        forged = base64.urlsafe_b64encode(f"{iv}:{tag}:{flipped}".encode()).decode().rstrip("=")
        with pytest.raises(TokenDecryptionError):
            decrypt_token(forged)


class TestExpiry:
    def test_expiry_hours_by_type(self):
        assert get_token_expiry_hours("invitation") == 48
        assert get_token_expiry_hours("reset") == 2

    def test_fresh_token_is_not_expired(self):
        assert not is_token_expired(build_token_data("jane@example.com", 1, "reset"))

    def test_reset_token_expires_after_two_hours(self):
        now_ms = int(time.time() * 1000)
        data = build_token_data("jane@example.com", 1, "reset")
        data["created_at"] = now_ms - 2 * HOUR_MS - 1
        assert is_token_expired(data, now_ms)

    def test_invitation_token_still_valid_after_two_hours(self):
        now_ms = int(time.time() * 1000)
        data = build_token_data("jane@example.com", 1, "invitation")
        data["created_at"] = now_ms - 3 * HOUR_MS
        assert not is_token_expired(data, now_ms)
        data["created_at"] = now_ms - 49 * HOUR_MS
        assert is_token_expired(data, now_ms)


def test_random_token_is_64_hex_chars():
    token = generate_random_token()
    assert len(token) == 64
    int(token, 16)
    assert token != generate_random_token()
