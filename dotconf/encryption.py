from __future__ import annotations

import base64
import binascii
import struct
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from argon2.low_level import Type as _ArgonType, hash_secret_raw as _argon_hash
from Cryptodome.Cipher import AES
from Cryptodome.Hash import MD5
from Cryptodome.Random import get_random_bytes
from Cryptodome.Util.Padding import pad, unpad

from .constants import (
    TOKEN_MAGIC,
    TOKEN_VERSION,
    TOKEN_HDR_FMT,
    LEGACY_MAGIC,
    LEGACY_SALT_SIZE,
    CIPHER_AES_GCM,
    CIPHER_LEGACY,
    KEY_SIZE,
    SALT_SIZE,
    NONCE_SIZE,
    TAG_SIZE,
    ARGON_TIME_COST,
    ARGON_MEMORY_COST_KIB,
    ARGON_PARALLELISM,
    MAX_ARGON_TIME_COST,
    MAX_ARGON_MEMORY_COST_KIB,
    MAX_ARGON_PARALLELISM,
)
from .errors import CodecError, PassphraseError


TOKEN_HDR_SIZE = struct.calcsize(TOKEN_HDR_FMT)


@dataclass
class EncryptionParams:
    salt: bytes
    time_cost: int
    memory_cost_kib: int
    parallelism: int


def derive_key(passphrase: str, params: EncryptionParams) -> bytes:
    return _argon_hash(
        secret=passphrase.encode("utf-8"),
        salt=params.salt,
        time_cost=params.time_cost,
        memory_cost=params.memory_cost_kib,
        parallelism=params.parallelism,
        hash_len=KEY_SIZE,
        type=_ArgonType.ID,
    )


class EncryptionContext:
    """AES-256-GCM under an Argon2id key; the token header is the AAD."""

    def __init__(self, key: bytes, params: EncryptionParams):
        self.key = key
        self.params = params

    @classmethod
    def create(cls, passphrase: str) -> "EncryptionContext":
        params = EncryptionParams(
            salt=get_random_bytes(SALT_SIZE),
            time_cost=ARGON_TIME_COST,
            memory_cost_kib=ARGON_MEMORY_COST_KIB,
            parallelism=ARGON_PARALLELISM,
        )
        return cls(derive_key(passphrase, params), params)

    @classmethod
    def from_params(cls, passphrase: str, params: EncryptionParams) -> "EncryptionContext":
        if not (
            1 <= params.time_cost <= MAX_ARGON_TIME_COST
            and 8 * params.parallelism <= params.memory_cost_kib <= MAX_ARGON_MEMORY_COST_KIB
            and 1 <= params.parallelism <= MAX_ARGON_PARALLELISM
        ):
            raise CodecError("Unsupported Argon2 parameters in token")
        return cls(derive_key(passphrase, params), params)

    def _header(self, nonce: bytes) -> bytes:
        p = self.params
        return struct.pack(
            TOKEN_HDR_FMT, TOKEN_MAGIC, TOKEN_VERSION, p.time_cost, p.memory_cost_kib, p.parallelism, p.salt, nonce
        )

    def encrypt(self, plaintext: bytes) -> bytes:
        nonce = get_random_bytes(NONCE_SIZE)
        header = self._header(nonce)
        cipher = AES.new(self.key, AES.MODE_GCM, nonce=nonce)
        cipher.update(header)
        ciphertext, tag = cipher.encrypt_and_digest(plaintext)
        return header + tag + ciphertext

    def decrypt(self, payload: bytes) -> bytes:
        header = payload[:TOKEN_HDR_SIZE]
        nonce = header[-NONCE_SIZE:]
        tag = payload[TOKEN_HDR_SIZE:TOKEN_HDR_SIZE + TAG_SIZE]
        ciphertext = payload[TOKEN_HDR_SIZE + TAG_SIZE:]
        cipher = AES.new(self.key, AES.MODE_GCM, nonce=nonce)
        cipher.update(header)
        try:
            return cipher.decrypt_and_verify(ciphertext, tag)
        except ValueError:
            raise PassphraseError("Wrong passphrase or corrupted content") from None


def _b64decode(token: str) -> Optional[bytes]:
    try:
        return base64.b64decode(token.strip(), validate=True)
    except (binascii.Error, ValueError):
        return None


def token_kind(token: str) -> Optional[str]:
    """Return ``"aes-gcm"``, ``"legacy"`` or None when ``token`` is not ciphertext."""
    raw = _b64decode(token)
    if raw is None:
        return None
    if raw.startswith(TOKEN_MAGIC) and len(raw) >= TOKEN_HDR_SIZE + TAG_SIZE:
        return CIPHER_AES_GCM
    if raw.startswith(LEGACY_MAGIC) and len(raw) > len(LEGACY_MAGIC) + LEGACY_SALT_SIZE:
        return CIPHER_LEGACY
    return None


class Keyring:
    """Argon2id keys for one passphrase, shared by the records of one archive.

    Each key derivation costs ``ARGON_MEMORY_COST_KIB`` of memory and noticeable
    time, so one keyring per ``constrict``/``liberate`` call derives a single
    sealing key (one salt for the whole archive, a fresh nonce per record) and
    at most one opening key per distinct salt found in the tokens.
    """

    def __init__(self, passphrase: str):
        self.passphrase = passphrase
        self._sealing: Optional[EncryptionContext] = None
        self._opening: Dict[Tuple[bytes, int, int, int], EncryptionContext] = {}

    def sealing(self) -> EncryptionContext:
        if self._sealing is None:
            self._sealing = EncryptionContext.create(self.passphrase)
        return self._sealing

    def opening(self, params: EncryptionParams) -> EncryptionContext:
        slot = (params.salt, params.time_cost, params.memory_cost_kib, params.parallelism)
        ctx = self._opening.get(slot)
        if ctx is None:
            ctx = self._opening[slot] = EncryptionContext.from_params(self.passphrase, params)
        return ctx


def encrypt_text(text: str, passphrase: str, keyring: Optional[Keyring] = None) -> str:
    """Encrypt ``text`` into a base64 AES-GCM token.

    Without ``keyring`` every call runs its own Argon2id derivation.
    """
    ctx = (keyring or Keyring(passphrase)).sealing()
    return base64.b64encode(ctx.encrypt(text.encode("utf-8"))).decode("ascii")


def decrypt_text(token: str, passphrase: str, keyring: Optional[Keyring] = None) -> str:
    """Decrypt an AES-GCM token.

    Raises:
        CodecError: ``token`` is not an AES-GCM token or has bad parameters.
        PassphraseError: authentication failed.
    """
    raw = _b64decode(token)
    if raw is None or token_kind(token) != CIPHER_AES_GCM:
        raise CodecError("Content is not an encrypted token")
    _magic, ver, t, m, p, salt, _nonce = struct.unpack(TOKEN_HDR_FMT, raw[:TOKEN_HDR_SIZE])
    if ver != TOKEN_VERSION:
        raise CodecError(f"Unsupported token version: {ver}")
    params = EncryptionParams(salt=salt, time_cost=t, memory_cost_kib=m, parallelism=p)
    ctx = (keyring or Keyring(passphrase)).opening(params)
    plaintext = ctx.decrypt(raw)
    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise CodecError(f"Decrypted content is not text: {exc}") from exc


# -------- Legacy OpenSSL/CryptoJS format --------

def evp_bytes_to_key(passphrase: bytes, salt: bytes, key_len: int = KEY_SIZE, iv_len: int = 16) -> tuple[bytes, bytes]:
    """OpenSSL EVP_BytesToKey with MD5 and a single iteration."""
    derived = b""
    block = b""
    while len(derived) < key_len + iv_len:
        block = MD5.new(block + passphrase + salt).digest()
        derived += block
    return derived[:key_len], derived[key_len:key_len + iv_len]


def legacy_encrypt_text(text: str, passphrase: str) -> str:
    salt = get_random_bytes(LEGACY_SALT_SIZE)
    key, iv = evp_bytes_to_key(passphrase.encode("utf-8"), salt)
    ciphertext = AES.new(key, AES.MODE_CBC, iv=iv).encrypt(pad(text.encode("utf-8"), AES.block_size))
    return base64.b64encode(LEGACY_MAGIC + salt + ciphertext).decode("ascii")


def legacy_decrypt_text(token: str, passphrase: str) -> Optional[str]:
    """Best-effort legacy decryption; None when the passphrase does not fit.

    The legacy format carries no authentication tag, so a wrong passphrase is
    only noticed when padding or UTF-8 decoding happens to fail.
    """
    raw = _b64decode(token)
    if raw is None or not raw.startswith(LEGACY_MAGIC):
        return None
    salt = raw[len(LEGACY_MAGIC):len(LEGACY_MAGIC) + LEGACY_SALT_SIZE]
    ciphertext = raw[len(LEGACY_MAGIC) + LEGACY_SALT_SIZE:]
    if not ciphertext or len(ciphertext) % AES.block_size:
        return None
    key, iv = evp_bytes_to_key(passphrase.encode("utf-8"), salt)
    try:
        plaintext = unpad(AES.new(key, AES.MODE_CBC, iv=iv).decrypt(ciphertext), AES.block_size)
        return plaintext.decode("utf-8")
    except (ValueError, UnicodeDecodeError):
        return None
