from __future__ import annotations

import base64
import concurrent.futures
import hashlib
import hmac
import logging
from typing import List

import pytest
from cryptography.hazmat.decrepit.ciphers.modes import CFB
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms
from cryptography.hazmat.primitives.kdf.hkdf import HKDFExpand

from pwseal.config import EncryptionConfig
from pwseal.envelope import Envelope
from pwseal.exceptions import (
    AuthenticationFailedError,
    ConfigurationError,
    DecryptionFailedError,
    EncryptionError,
    ErrorKind,
    InsufficientEntropyError,
    IterationsOutOfBoundsError,
    MalformedEnvelopeError,
)
from pwseal.primitives import AesCfbCipher, HmacSha256, SystemRandomSource
from pwseal.symmetric import (
    SymmetricEncryption,
    decrypt_with_password,
    encrypt_with_password,
)

PASSWORD = "correct horse battery staple"
PLAIN_TEXT = b"Never roll your own crypto."

# Envelopes written by the previous implementation of this format.
KNOWN_ENVELOPE = (
    "0IfYyf22fTOe0x+sBHIEmg8AJY0qoiq1M+fHW55KIvasnMn+s86QOaGPDpv7NUH09Vc0gvvJDSt1NKtK"
    "5f3ze2xIKyOU8z9gzISibGPpYyRRxi1N42ixEC42N0bAQPx0RiVgAmj0OYfvLCxUWMjHa9mcGJSMBg7Cu0A="
)
KNOWN_PLAIN_TEXT = b"Lorem ipsum dolor sit amet, consectetur adipiscing elit."
TAMPERED_ENVELOPE = (
    "oV7gIO6zYQVRw7vWhjETAQ0AAAAAAAAAAAAAAAAAAAAAABI7ua0JZobYs7reCgmqMKt3DZkKVldsd0f9"
    "4TRMt+AxHba3XkD/PDxXiUhBJ28z3+iQW7B5"
)
TRUNCATED_ENVELOPE = (
    "8i/4Tww0RCH/iZOzcYnAXQwAtAMDwN/p+a8DAGWxeA4cKiWNhTnEtbhzDrxkQXEDolUtV+T7A9L6Bwys1w=="
)


# --- Fakes implementing protocol-compliant surfaces ---


class CountingHmac:
    def __init__(self) -> None:
        self._inner = HmacSha256()
        self.calls = 0

    @property
    def digest_size(self) -> int:
        return self._inner.digest_size

    def hmac(self, message: bytes, key: bytes) -> bytes:
        self.calls += 1
        return self._inner.hmac(message, key)


class RecordingCipher:
    def __init__(self, fail_encrypt: bool = False, fail_decrypt: bool = False) -> None:
        self._inner = AesCfbCipher()
        self.fail_encrypt = fail_encrypt
        self.fail_decrypt = fail_decrypt
        self.decrypt_calls = 0

    @property
    def key_length(self) -> int:
        return self._inner.key_length

    @property
    def iv_length(self) -> int:
        return self._inner.iv_length

    def encrypt(self, plaintext: bytes, key: bytes, iv: bytes) -> bytes:
        if self.fail_encrypt:
            raise RuntimeError("provider exploded")
        return self._inner.encrypt(plaintext, key, iv)

    def decrypt(self, ciphertext: bytes, key: bytes, iv: bytes) -> bytes:
        self.decrypt_calls += 1
        if self.fail_decrypt:
            raise ValueError("provider rejected ciphertext")
        return self._inner.decrypt(ciphertext, key, iv)


class BrokenLengthCipher(RecordingCipher):
    @property
    def iv_length(self) -> int:
        return 0


class ScriptedRandom:
    def __init__(self, *outputs: object) -> None:
        self._outputs: List[object] = list(outputs)

    def random_bytes(self, n: int) -> bytes:
        value = self._outputs.pop(0)
        if isinstance(value, BaseException):
            raise value
        return value  # type: ignore[return-value]


@pytest.fixture(scope="module")
def crypto() -> SymmetricEncryption:
    return SymmetricEncryption(12)


@pytest.fixture(scope="module")
def envelope(crypto: SymmetricEncryption) -> bytes:
    return crypto.encrypt(PLAIN_TEXT, PASSWORD)


# --- round trips ---


def test_roundtrip_scenario(crypto: SymmetricEncryption, envelope: bytes) -> None:
    assert crypto.decrypt(envelope, PASSWORD) == PLAIN_TEXT


def test_wrong_password_fails_authentication(
    crypto: SymmetricEncryption, envelope: bytes
) -> None:
    with pytest.raises(AuthenticationFailedError, match="Signature verification failed"):
        crypto.decrypt(envelope, "wrong")


@pytest.mark.parametrize("plaintext", [b"", b"x", bytes(range(256)) * 5])
def test_roundtrip_various_sizes(crypto: SymmetricEncryption, plaintext: bytes) -> None:
    blob = crypto.encrypt(plaintext, b"pw")
    assert len(blob) == 16 + 2 + 16 + len(plaintext) + 32
    assert crypto.decrypt(blob, b"pw") == plaintext


def test_str_and_bytes_passwords_are_equivalent(crypto: SymmetricEncryption) -> None:
    blob = crypto.encrypt(b"data", "pässword")
    assert crypto.decrypt(blob, "pässword".encode("utf-8")) == b"data"
    assert crypto.decrypt(blob, bytearray("pässword".encode("utf-8"))) == b"data"


def test_envelope_layout(crypto: SymmetricEncryption, envelope: bytes) -> None:
    parsed = Envelope.parse(envelope, crypto.iv_length, crypto.hmac_length)
    assert parsed.iterations_log2 == 12
    assert envelope[16:18] == b"\x0c\x00"
    assert len(parsed.ciphertext) == len(PLAIN_TEXT)


def test_fresh_salt_and_iv_per_encryption(crypto: SymmetricEncryption) -> None:
    a = Envelope.parse(crypto.encrypt(b"same", b"pw"), 16, 32)
    b = Envelope.parse(crypto.encrypt(b"same", b"pw"), 16, 32)
    assert a.salt != b.salt
    assert a.iv != b.iv
    assert a.ciphertext != b.ciphertext


def test_envelope_matches_independent_reconstruction(
    crypto: SymmetricEncryption, envelope: bytes
) -> None:
    parsed = Envelope.parse(envelope, 16, 32)
    derived = hashlib.pbkdf2_hmac("sha256", PASSWORD.encode(), parsed.salt, 4096)
    cipher_key = HKDFExpand(
        algorithm=hashes.SHA256(), length=16, info=b"EncryptionKey"
    ).derive(derived)
    mac_key = HKDFExpand(
        algorithm=hashes.SHA256(), length=32, info=b"AuthenticationKey"
    ).derive(derived)

    assert hmac.new(mac_key, envelope[:-32], hashlib.sha256).digest() == parsed.tag
    decryptor = Cipher(algorithms.AES(cipher_key), CFB(parsed.iv)).decryptor()
    assert decryptor.update(parsed.ciphertext) + decryptor.finalize() == PLAIN_TEXT


# --- envelopes from the previous implementation ---


def test_decrypt_known_envelope() -> None:
    crypto = SymmetricEncryption(16)
    assert crypto.decrypt(base64.b64decode(KNOWN_ENVELOPE), PASSWORD) == KNOWN_PLAIN_TEXT


def test_known_envelope_too_many_iterations() -> None:
    crypto = SymmetricEncryption(14)
    with pytest.raises(IterationsOutOfBoundsError, match="PBKDF2 iterations out of bounds"):
        crypto.decrypt(base64.b64decode(KNOWN_ENVELOPE), PASSWORD)


def test_known_envelope_wrong_password() -> None:
    with pytest.raises(AuthenticationFailedError):
        SymmetricEncryption(16).decrypt(base64.b64decode(KNOWN_ENVELOPE), "clueless")


def test_tampered_envelope() -> None:
    with pytest.raises(AuthenticationFailedError):
        SymmetricEncryption(16).decrypt(base64.b64decode(TAMPERED_ENVELOPE), "clueless")


def test_truncated_envelope_is_malformed() -> None:
    with pytest.raises(MalformedEnvelopeError):
        SymmetricEncryption(12).decrypt(base64.b64decode(TRUNCATED_ENVELOPE), PASSWORD)


# --- tamper detection ---


def test_every_single_bit_flip_is_detected(crypto: SymmetricEncryption) -> None:
    blob = crypto.encrypt(b"tamper me", b"pw")
    for bit in range(len(blob) * 8):
        index = bit // 8
        corrupted = bytearray(blob)
        corrupted[index] ^= 1 << (bit % 8)
        if index in (16, 17):
            # the cost field: a flip may push it out of bounds before authentication
            with pytest.raises((AuthenticationFailedError, IterationsOutOfBoundsError)):
                crypto.decrypt(bytes(corrupted), b"pw")
        else:
            with pytest.raises(AuthenticationFailedError):
                crypto.decrypt(bytes(corrupted), b"pw")


def test_lowered_cost_field_fails_authentication(
    crypto: SymmetricEncryption, envelope: bytes
) -> None:
    corrupted = bytearray(envelope)
    corrupted[16] = 8
    with pytest.raises(AuthenticationFailedError):
        crypto.decrypt(bytes(corrupted), PASSWORD)


@pytest.mark.parametrize("n", [0, 1, 18, 65])
def test_short_envelope_is_malformed(crypto: SymmetricEncryption, n: int) -> None:
    with pytest.raises(MalformedEnvelopeError):
        crypto.decrypt(b"\x00" * n, PASSWORD)


def test_appended_bytes_fail_authentication(
    crypto: SymmetricEncryption, envelope: bytes
) -> None:
    with pytest.raises(AuthenticationFailedError):
        crypto.decrypt(envelope + b"\x00", PASSWORD)


# --- iteration bound ---


def test_honest_envelope_above_maximum_is_rejected() -> None:
    blob = SymmetricEncryption(16).encrypt(PLAIN_TEXT, PASSWORD)
    with pytest.raises(IterationsOutOfBoundsError):
        SymmetricEncryption(14).decrypt(blob, PASSWORD)


@pytest.mark.parametrize("cost", [13, 31, 32767, -1, -32768])
def test_out_of_bounds_cost_skips_key_derivation(cost: int) -> None:
    prf = CountingHmac()
    crypto = SymmetricEncryption(12, keyed_hash=prf)
    forged = Envelope(
        salt=b"s" * 16, iterations_log2=cost, iv=b"i" * 16, ciphertext=b"c", tag=b"t" * 32
    ).to_bytes()
    with pytest.raises(IterationsOutOfBoundsError):
        crypto.decrypt(forged, PASSWORD)
    assert prf.calls == 0


def test_lower_cost_envelopes_are_accepted() -> None:
    blob = SymmetricEncryption(12).encrypt(b"cheap", b"pw")
    assert SymmetricEncryption(14).decrypt(blob, b"pw") == b"cheap"


# --- verify-then-decrypt ---


def test_cipher_not_invoked_when_authentication_fails() -> None:
    cipher = RecordingCipher()
    crypto = SymmetricEncryption(12, cipher=cipher)
    blob = crypto.encrypt(b"data", b"pw")
    with pytest.raises(AuthenticationFailedError):
        crypto.decrypt(blob, b"other")
    assert cipher.decrypt_calls == 0
    assert crypto.decrypt(blob, b"pw") == b"data"
    assert cipher.decrypt_calls == 1


def test_cipher_failure_after_authentication() -> None:
    cipher = RecordingCipher(fail_decrypt=True)
    crypto = SymmetricEncryption(12, cipher=cipher)
    blob = crypto.encrypt(b"data", b"pw")
    with pytest.raises(DecryptionFailedError, match="Failed decrypting"):
        crypto.decrypt(blob, b"pw")
    with pytest.raises(AuthenticationFailedError):
        crypto.decrypt(blob, b"nope")


def test_cipher_failure_on_encrypt_is_wrapped() -> None:
    crypto = SymmetricEncryption(12, cipher=RecordingCipher(fail_encrypt=True))
    with pytest.raises(EncryptionError) as info:
        crypto.encrypt(b"data", b"pw")
    assert isinstance(info.value.__cause__, RuntimeError)
    assert info.value.kind is ErrorKind.CIPHER_FAILURE


# --- randomness ---


def test_random_source_failure_surfaces() -> None:
    crypto = SymmetricEncryption(12, random_source=ScriptedRandom(OSError("gone")))
    with pytest.raises(InsufficientEntropyError, match="Could not read random data"):
        crypto.encrypt(b"data", b"pw")


def test_random_quality_failure_surfaces() -> None:
    err = InsufficientEntropyError("Quality of random data is not sufficient")
    crypto = SymmetricEncryption(12, random_source=ScriptedRandom(b"s" * 16, err))
    with pytest.raises(InsufficientEntropyError, match="not sufficient"):
        crypto.encrypt(b"data", b"pw")


def test_random_short_read_surfaces() -> None:
    crypto = SymmetricEncryption(12, random_source=ScriptedRandom(b"short"))
    with pytest.raises(InsufficientEntropyError):
        crypto.encrypt(b"data", b"pw")


def test_injected_random_source_is_used() -> None:
    salt, iv = b"\x01" * 16, b"\x02" * 16
    crypto = SymmetricEncryption(12, random_source=ScriptedRandom(salt, iv))
    blob = crypto.encrypt(b"data", b"pw")
    assert blob[:16] == salt
    assert blob[18:34] == iv
    assert SymmetricEncryption(12).decrypt(blob, b"pw") == b"data"


# --- construction ---


def test_construction_accepts_config_and_profile_values() -> None:
    crypto = SymmetricEncryption(EncryptionConfig(iterations_log2=14))
    assert crypto.iterations_log2 == 14
    assert crypto.iv_length == 16
    assert crypto.hmac_length == 32
    assert crypto.minimum_envelope_length == 66


def test_low_cost_construction_uses_minimum(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        crypto = SymmetricEncryption(10)
    assert crypto.iterations_log2 == 12
    assert "too low" in caplog.text


def test_zero_iv_length_is_configuration_error() -> None:
    with pytest.raises(ConfigurationError, match="Could not determine IV size"):
        SymmetricEncryption(12, cipher=BrokenLengthCipher())


def test_zero_digest_size_is_configuration_error() -> None:
    class NoDigest(CountingHmac):
        @property
        def digest_size(self) -> int:
            return 0

    with pytest.raises(ConfigurationError, match="output size"):
        SymmetricEncryption(12, keyed_hash=NoDigest())


def test_instance_is_immutable(crypto: SymmetricEncryption) -> None:
    with pytest.raises(AttributeError):
        crypto.cache = {}  # type: ignore[attr-defined]


# --- Outcome values ---


def test_try_variants_return_outcomes(crypto: SymmetricEncryption) -> None:
    enc = crypto.try_encrypt(b"data", b"pw")
    assert enc.ok and enc.kind is None
    dec = crypto.try_decrypt(enc.unwrap(), b"pw")
    assert dec.ok and dec.unwrap() == b"data"

    bad = crypto.try_decrypt(enc.unwrap(), b"wrong")
    assert not bad.ok
    assert bad.kind is ErrorKind.AUTHENTICATION_FAILED
    with pytest.raises(AuthenticationFailedError):
        bad.unwrap()

    short = crypto.try_decrypt(b"", b"pw")
    assert short.kind is ErrorKind.MALFORMED_ENVELOPE


def test_try_encrypt_reports_entropy_failure() -> None:
    crypto = SymmetricEncryption(12, random_source=ScriptedRandom(OSError("gone")))
    outcome = crypto.try_encrypt(b"data", b"pw")
    assert outcome.kind is ErrorKind.INSUFFICIENT_ENTROPY


# --- misc ---


def test_type_errors(crypto: SymmetricEncryption) -> None:
    with pytest.raises(TypeError):
        crypto.encrypt("text", b"pw")  # type: ignore[arg-type]
    with pytest.raises(TypeError):
        crypto.encrypt(b"data", 1234)  # type: ignore[arg-type]
    with pytest.raises(TypeError):
        crypto.decrypt("blob", b"pw")  # type: ignore[arg-type]


def test_functional_helpers() -> None:
    blob = encrypt_with_password(b"hello", "pw")
    assert decrypt_with_password(blob, "pw") == b"hello"
    with pytest.raises(IterationsOutOfBoundsError):
        decrypt_with_password(
            encrypt_with_password(b"hello", "pw", iterations_log2=13), "pw"
        )


def test_shared_instance_is_thread_safe(crypto: SymmetricEncryption) -> None:
    def one(i: int) -> bool:
        data = f"message-{i}".encode()
        return crypto.decrypt(crypto.encrypt(data, b"pw"), b"pw") == data

    with concurrent.futures.ThreadPoolExecutor(max_workers=8) as ex:
        results = list(ex.map(one, range(16)))
    assert all(results)


def test_secrets_are_not_logged(caplog: pytest.LogCaptureFixture) -> None:
    crypto = SymmetricEncryption(12)
    with caplog.at_level(logging.DEBUG, logger="pwseal"):
        blob = crypto.encrypt(b"top secret plaintext", PASSWORD)
        with pytest.raises(AuthenticationFailedError):
            crypto.decrypt(blob, "wrong password")
    assert "authentication failed" in caplog.text
    assert PASSWORD not in caplog.text
    assert "top secret" not in caplog.text
    assert "wrong password" not in caplog.text


def test_default_capabilities_are_real() -> None:
    crypto = SymmetricEncryption(
        12,
        keyed_hash=HmacSha256(),
        cipher=AesCfbCipher(),
        random_source=SystemRandomSource(),
    )
    assert crypto.decrypt(crypto.encrypt(b"x", b"pw"), b"pw") == b"x"
