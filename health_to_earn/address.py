"""
dHealth address parsing.

Raw addresses are the base32 form of 24 bytes:

    network byte | 20 bytes account hash | 3 bytes checksum

where the checksum is the head of SHA3-256 over the first 21 bytes.
Pretty-printed addresses (groups of six separated by ``-``) are accepted.
"""

import base64
import binascii
import hashlib
from dataclasses import dataclass

from .errors import InvalidAddress

RAW_ADDRESS_LENGTH = 39
DECODED_ADDRESS_LENGTH = 24
CHECKSUM_LENGTH = 3

NETWORKS = {
    104: "MAIN_NET",
    152: "TEST_NET",
    96: "MIJIN",
    144: "MIJIN_TEST",
    120: "PRIVATE",
    168: "PRIVATE_TEST",
}


@dataclass(frozen=True)
class Address:
    plain: str
    network: str

    def __str__(self) -> str:
        return self.plain

    def pretty(self) -> str:
        return "-".join(self.plain[i:i + 6] for i in range(0, len(self.plain), 6))


def validate(raw: str | None) -> Address:
    """Parse ``raw`` into an :class:`Address` or raise :class:`InvalidAddress`."""
    if not raw or not isinstance(raw, str):
        raise InvalidAddress("address is missing")

    plain = raw.strip().upper().replace("-", "")
    if len(plain) != RAW_ADDRESS_LENGTH:
        raise InvalidAddress(f"address {plain} has to be {RAW_ADDRESS_LENGTH} characters long")

    try:
        decoded = base64.b32decode(plain + "=")
    except (binascii.Error, ValueError):
        raise InvalidAddress(f"address {plain} is not valid base32")

    if len(decoded) != DECODED_ADDRESS_LENGTH:
        raise InvalidAddress(f"address {plain} decodes to {len(decoded)} bytes")

    network = NETWORKS.get(decoded[0])
    if network is None:
        raise InvalidAddress(f"address {plain} has unknown network byte {decoded[0]}")

    body, checksum = decoded[:-CHECKSUM_LENGTH], decoded[-CHECKSUM_LENGTH:]
    if hashlib.sha3_256(body).digest()[:CHECKSUM_LENGTH] != checksum:
        raise InvalidAddress(f"address {plain} has a bad checksum")

    return Address(plain=plain, network=network)


def is_valid(raw: str | None) -> bool:
    try:
        validate(raw)
    except InvalidAddress:
        return False
    return True
