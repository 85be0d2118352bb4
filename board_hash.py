from __future__ import annotations

FNV_OFFSET = 2166136261
FNV_PRIME = 16777619
_MASK32 = 0xFFFFFFFF


def _signed32(value: int) -> int:
    value &= _MASK32
    return value - (1 << 32) if value & 0x80000000 else value


def fnv_hash(data: bytes) -> int:
    """FNV-1a over ``data`` followed by an avalanche mix; signed 32-bit result."""
    h = FNV_OFFSET
    for b in data:
        h = ((h ^ b) * FNV_PRIME) & _MASK32

    # Shifts to the right are arithmetic, as on a signed 32-bit integer.
    h = (h + (h << 13)) & _MASK32
    h ^= (_signed32(h) >> 7) & _MASK32
    h = (h + (h << 3)) & _MASK32
    h ^= (_signed32(h) >> 17) & _MASK32
    h = (h + (h << 5)) & _MASK32
    return _signed32(h)


class BoardKey:
    """Hashable snapshot of raw board bytes, equal when the bytes are equal."""

    __slots__ = ("data", "_hash")

    def __init__(self, data: bytes) -> None:
        self.data = bytes(data)
        self._hash = fnv_hash(self.data)

    def __hash__(self) -> int:
        return self._hash

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BoardKey):
            return NotImplemented
        return self.data == other.data

    def __repr__(self) -> str:
        return f"BoardKey({len(self.data)} bytes, hash={self._hash})"
