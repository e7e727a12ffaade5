from __future__ import annotations

import re
from typing import Optional, Union
from urllib.parse import quote, unquote

from .constants import URI_COMPONENT_SAFE, CIPHER_AES_GCM, CIPHER_LEGACY, CIPHERS, DEFAULT_CIPHER
from .encryption import Keyring, encrypt_text, decrypt_text, legacy_encrypt_text, legacy_decrypt_text, token_kind
from .errors import CodecError
from .log import get_log

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def percent_encode(text: str, errors: str = "strict") -> str:
    """URI-component escaping, the same set ``encodeURIComponent`` keeps."""
    return quote(text, safe=URI_COMPONENT_SAFE, encoding="utf-8", errors=errors)


def percent_decode(text: str) -> str:
    if _BAD_ESCAPE.search(text):
        raise ValueError("URI malformed")
    # Invalid UTF-8 sequences come back as surrogates so raw bytes survive a round trip.
    return unquote(text, encoding="utf-8", errors="surrogateescape")


def encode(
    content: str,
    passphrase: Optional[str] = None,
    *,
    cipher: str = DEFAULT_CIPHER,
    errors: str = "strict",
    keyring: Optional[Keyring] = None,
    log=None,
) -> str:
    """Percent-encode ``content``, then encrypt it when a passphrase is given.

    Args:
        content: Text to encode.
        passphrase: Optional secret; empty or None means no encryption.
        cipher: ``"aes-gcm"`` (default) or ``"legacy"`` for tokens readable by
            CryptoJS/OpenSSL based tools.
        errors: Error handler for characters UTF-8 cannot encode;
            ``"surrogateescape"`` lets undecodable file bytes through.
        keyring: Reuse derived keys across calls; see :class:`Keyring`.

    Raises:
        CodecError: ``content`` cannot be percent-encoded or ``cipher`` is unknown.
    """
    log = get_log(log=log)
    if cipher not in CIPHERS:
        log.error(CodecError(f"Unknown cipher: {cipher}"))
    try:
        encoded = percent_encode(content, errors=errors)
    except UnicodeEncodeError as exc:
        log.error(CodecError(f"Cannot percent-encode content: {exc}"))
    if passphrase:
        if cipher == CIPHER_LEGACY:
            encoded = legacy_encrypt_text(encoded, passphrase)
        else:
            encoded = encrypt_text(encoded, passphrase, keyring)
    return encoded


def decode(
    data: Union[str, bytes],
    passphrase: Optional[str] = None,
    *,
    keyring: Optional[Keyring] = None,
    log=None,
) -> str:
    """Decrypt ``data`` when a passphrase is given, then percent-decode it.

    Legacy tokens keep their best-effort behavior: when the passphrase does not
    fit, the token text itself goes through percent-decoding. AES-GCM tokens
    raise :class:`PassphraseError` instead.

    Raises:
        CodecError: malformed escapes, or ``data`` is not ciphertext although a
            passphrase was given.
        PassphraseError: AES-GCM authentication failed.
    """
    log = get_log(log=log)
    if isinstance(data, (bytes, bytearray)):
        data = bytes(data).decode("utf-8", errors="surrogateescape")
    decoded = None
    if passphrase:
        kind = token_kind(data)
        try:
            if kind == CIPHER_LEGACY:
                decoded = legacy_decrypt_text(data, passphrase)
            elif kind == CIPHER_AES_GCM:
                decoded = decrypt_text(data, passphrase, keyring)
            else:
                raise CodecError("Content is not encrypted; cannot decrypt with a passphrase")
        except CodecError as exc:
            log.error(exc)
    try:
        return percent_decode(data if decoded is None else decoded)
    except ValueError as exc:
        log.error(CodecError(f"Cannot percent-decode content: {exc}"))
