from __future__ import annotations

# Casper key prefixes as they appear in CSPR.cloud event payloads.
KNOWN_ADDRESS_PREFIXES: tuple[str, ...] = (
    "account-hash-",
    "hash-",
    "contract-",
    "uref-",
)


def normalize_address(address: str | None) -> str | None:
    """
    Strip one known key prefix from the front of an address.

    Unknown prefixes, empty strings and None pass through unchanged.
    """
    if not address:
        return address

    for prefix in KNOWN_ADDRESS_PREFIXES:
        if address.startswith(prefix):
            return address[len(prefix) :]

    return address
