"""Pool identifier parsing."""

from __future__ import annotations

from .exceptions import InvalidPoolIdError
from .models import PoolRef


def parse_pool_id(pool_id: str | None) -> PoolRef:
    """Parse "network:address" or "network_address" into a PoolRef.

    ':' wins when present, so "eth:0xab_cd" is network "eth", address "0xab_cd".
    Exactly two non-empty parts are required; anything else raises
    InvalidPoolIdError.
    """
    if not pool_id:
        raise InvalidPoolIdError("Empty pool id")

    separator = ":" if ":" in pool_id else "_"
    parts = pool_id.split(separator)
    if len(parts) != 2:
        raise InvalidPoolIdError(f"Invalid pool id format: {pool_id!r}")

    network, pool_address = parts
    if not network or not pool_address:
        raise InvalidPoolIdError(f"Invalid pool id format: {pool_id!r}")

    return PoolRef(network=network, pool_address=pool_address)
