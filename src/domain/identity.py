"""
Identity and hashing - Name, label and node identifiers.

Human-readable names map to fixed-size 32-byte node identifiers through a
hierarchical keccak-256 composition:

    labelhash(label)        = keccak256(utf8(label))
    subnode(parent, label)  = keccak256(parent || label)
    namehash("")            = 32 zero bytes
    namehash("a.b")         = subnode(namehash("b"), labelhash("a"))

Labels are hashed exactly as given. Unicode normalization is the caller's
responsibility and is never applied here.
"""

from eth_hash.auto import keccak

ZERO_ADDRESS = "0x" + "00" * 20
ROOT_NODE = b"\x00" * 32


def labelhash(label: str) -> bytes:
    """Hash a single name segment to its 32-byte label hash."""
    return keccak(label.encode("utf-8"))


def subnode(parent: bytes, label: bytes) -> bytes:
    """Compose a child node identifier from its parent node and label hash."""
    return keccak(parent + label)


def namehash(name: str) -> bytes:
    """Compute the node identifier of a dot-separated name."""
    node = ROOT_NODE
    if name:
        for label in reversed(name.split(".")):
            node = subnode(node, labelhash(label))
    return node


def interface_id(signature: str) -> bytes:
    """Return the 4-byte selector of a function signature."""
    return keccak(signature.encode("ascii"))[:4]


def normalize_address(address: str | None) -> str:
    """
    Normalize an address for storage and comparison.

    None and empty strings map to ZERO_ADDRESS; everything else is
    stripped and lowercased.
    """
    if not address:
        return ZERO_ADDRESS
    return address.strip().lower()


def is_zero(address: str | None) -> bool:
    return normalize_address(address) == ZERO_ADDRESS


def to_hex(value: bytes) -> str:
    return "0x" + value.hex()


def from_hex(value: str) -> bytes:
    """Decode a 0x-prefixed (or bare) hex string."""
    if value.startswith(("0x", "0X")):
        value = value[2:]
    return bytes.fromhex(value)
