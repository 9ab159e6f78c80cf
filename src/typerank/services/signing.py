"""Signing authority for game results and achievement mints.

Signatures are Ed25519 over the BLAKE3 digest of a packed tuple: the player
address as 20 raw bytes followed by each integer as a big-endian uint256.
"""

from __future__ import annotations

import binascii
import logging

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from nacl.exceptions import BadSignatureError
from nacl.signing import VerifyKey

from typerank.core.errors import SigningUnavailableError, ValidationError
from typerank.core.settings import settings
from typerank.utils.address import is_address
from typerank.utils.hash import blake3_digest

logger = logging.getLogger(__name__)

_UINT256_MAX = 2**256 - 1
_SEED_LENGTH_BYTES = 32


def pack_message(player: str, *values: int) -> bytes:
    """Pack ``(player, *values)`` the way the contract hashes them."""
    if not is_address(player):
        raise ValidationError(f"Invalid player address: {player!r}")
    packed = bytes.fromhex(player[2:])
    for value in values:
        number = int(value)
        if number < 0 or number > _UINT256_MAX:
            raise ValidationError(f"Value out of uint256 range: {value!r}")
        packed += number.to_bytes(32, "big")
    return packed


def message_digest(player: str, *values: int) -> bytes:
    return blake3_digest(pack_message(player, *values))


class SigningAuthority:
    """Holds the service key and signs results the ledger will accept."""

    def __init__(self, private_key: Ed25519PrivateKey | None) -> None:
        self._private_key = private_key

    @classmethod
    def from_hex(cls, seed_hex: str | None) -> SigningAuthority:
        """Build from a hex-encoded 32-byte seed; ``None`` yields a disabled signer."""
        if not seed_hex:
            return cls(None)
        cleaned = seed_hex.strip().removeprefix("0x")
        try:
            seed = bytes.fromhex(cleaned)
        except ValueError as err:
            raise ValueError(f"Invalid signer key encoding: {err}") from err
        if len(seed) != _SEED_LENGTH_BYTES:
            raise ValueError("Signer key must be a 32-byte Ed25519 seed")
        return cls(Ed25519PrivateKey.from_private_bytes(seed))

    @classmethod
    def from_settings(cls) -> SigningAuthority:
        return cls.from_hex(settings.signer_private_key)

    @property
    def available(self) -> bool:
        return self._private_key is not None

    @property
    def public_key_hex(self) -> str | None:
        if self._private_key is None:
            return None
        raw = self._private_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        return raw.hex()

    def _sign(self, digest: bytes) -> str:
        if self._private_key is None:
            raise SigningUnavailableError("Signer not configured")
        return "0x" + self._private_key.sign(digest).hex()

    def sign_game_result(
        self,
        player: str,
        session_id: int,
        words_typed: int,
        correct_words: int,
        mistakes: int,
        correct_characters: int,
        wpm: int,
    ) -> str:
        """Authorize a completed session for submission to the ledger."""
        digest = message_digest(
            player, session_id, words_typed, correct_words, mistakes, correct_characters, wpm
        )
        signature = self._sign(digest)
        logger.info("Signed game result for %s session %s", player.lower(), session_id)
        return signature

    def sign_achievement(self, player: str, achievement_id: int) -> str:
        signature = self._sign(message_digest(player, achievement_id))
        logger.info("Signed achievement %s for %s", achievement_id, player.lower())
        return signature

    def verify(self, signature_hex: str, player: str, *values: int) -> bool:
        """Check a signature produced by this authority for ``(player, *values)``."""
        pubkey_hex = self.public_key_hex
        if pubkey_hex is None:
            return False
        try:
            key = VerifyKey(binascii.unhexlify(pubkey_hex))
            signature = binascii.unhexlify(signature_hex.removeprefix("0x"))
            key.verify(message_digest(player, *values), signature)
        except (BadSignatureError, binascii.Error, ValueError, ValidationError):
            return False
        return True
