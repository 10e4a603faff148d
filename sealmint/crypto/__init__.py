"""
Cryptographic primitives for sealmint.

This module provides:
- Hashing functions (SHA-256, Keccak-256)
- Participant identities (secp256k1 keypairs, Ethereum-style addresses)
- Blinding factors for sealed appraisals

Design Notes:
-------------
Commitments are Keccak-256 digests over a packed encoding so that an
appraisal sealed off-line by any EVM-compatible tool opens correctly here.
Participants are identified by 20-byte addresses derived from secp256k1
public keys, the same convention the hashing layout assumes.
"""

import hashlib
import secrets
from dataclasses import dataclass

from Crypto.Hash import keccak
from py_ecc.secp256k1 import secp256k1


# =============================================================================
# Constants
# =============================================================================

# secp256k1 curve order (number of points on the curve)
SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

BLINDING_FACTOR_SIZE = 32


# =============================================================================
# Hashing
# =============================================================================


def sha256(data: bytes) -> bytes:
    """Compute SHA-256 hash."""
    return hashlib.sha256(data).digest()


def keccak256(data: bytes) -> bytes:
    """
    Compute Keccak-256 hash (Ethereum-style).

    Used for: commitments, address derivation.
    """
    k = keccak.new(digest_bits=256)
    k.update(data)
    return k.digest()


# =============================================================================
# Key Generation
# =============================================================================


@dataclass
class KeyPair:
    """
    An ECDSA keypair on secp256k1.

    Attributes:
        private_key: 32-byte secret key (integer in [1, order-1])
        public_key: 64-byte uncompressed public key (x || y coordinates)
    """
    private_key: bytes  # 32 bytes
    public_key: bytes   # 64 bytes (uncompressed, no 0x04 prefix)

    @property
    def address_bytes(self) -> bytes:
        """20-byte participant address."""
        return address_from_public_key(self.public_key)

    @property
    def address(self) -> str:
        """Address as 0x-prefixed hex."""
        return bytes_to_hex(self.address_bytes)


def generate_keypair() -> KeyPair:
    """
    Generate a new random keypair.

    Uses cryptographically secure random number generator.
    """
    private_key_int = secrets.randbelow(SECP256K1_ORDER - 1) + 1
    private_key = private_key_int.to_bytes(32, byteorder="big")
    return KeyPair(private_key=private_key, public_key=private_key_to_public_key(private_key))


def private_key_to_public_key(private_key: bytes) -> bytes:
    """
    Derive public key from private key.

    Args:
        private_key: 32-byte private key

    Returns:
        64-byte uncompressed public key
    """
    if len(private_key) != 32:
        raise ValueError("Private key must be 32 bytes")

    # Derive public key: P = k * G (scalar multiplication on curve)
    public_key_point = secp256k1.privtopub(private_key)
    x_bytes = public_key_point[0].to_bytes(32, byteorder="big")
    y_bytes = public_key_point[1].to_bytes(32, byteorder="big")
    return x_bytes + y_bytes


def address_from_public_key(public_key: bytes) -> bytes:
    """
    Derive address from public key (Ethereum-style).

    address = keccak256(public_key)[-20:]
    """
    if len(public_key) != 64:
        raise ValueError("Public key must be 64 bytes")
    return keccak256(public_key)[-20:]


def random_blinding_factor() -> bytes:
    """Fresh 32-byte secret used to seal an appraisal."""
    return secrets.token_bytes(BLINDING_FACTOR_SIZE)


# =============================================================================
# Utility Functions
# =============================================================================


def bytes_to_hex(data: bytes) -> str:
    """Convert bytes to hex string with 0x prefix."""
    return "0x" + data.hex()


def hex_to_bytes(hex_str: str) -> bytes:
    """Convert hex string (with or without 0x prefix) to bytes."""
    if hex_str.startswith("0x") or hex_str.startswith("0X"):
        hex_str = hex_str[2:]
    return bytes.fromhex(hex_str)


def is_valid_address(address: str) -> bool:
    """Check if string is a valid address format."""
    if not address.startswith("0x"):
        return False
    if len(address) != 42:  # 0x + 40 hex chars
        return False
    try:
        int(address, 16)
        return True
    except ValueError:
        return False


def short_hex(data: bytes, length: int = 8) -> str:
    """Abbreviated hex for log lines."""
    return data.hex()[:length] + "..."


__all__ = [
    "SECP256K1_ORDER",
    "BLINDING_FACTOR_SIZE",
    "sha256",
    "keccak256",
    "KeyPair",
    "generate_keypair",
    "private_key_to_public_key",
    "address_from_public_key",
    "random_blinding_factor",
    "bytes_to_hex",
    "hex_to_bytes",
    "is_valid_address",
    "short_hex",
]
