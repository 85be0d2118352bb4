from __future__ import annotations

from typing import Iterable, List

# A candidate mask keeps bit v set while value v is still possible in a cell.
# Bit 0 is never used, so a grid of side n needs n + 1 bits.
Mask = int


def value_bit(value: int) -> Mask:
    return 1 << value


def all_values_mask(size: int) -> Mask:
    """Mask with every value 1..size set."""
    return ((1 << (size + 1)) - 1) & ~1


def mask_of(values: Iterable[int]) -> Mask:
    mask = 0
    for value in values:
        mask |= 1 << value
    return mask


def has_value(mask: Mask, value: int) -> bool:
    return (mask >> value) & 1 == 1


def value_count(mask: Mask) -> int:
    return mask.bit_count()


def is_value_set(mask: Mask) -> bool:
    """True when exactly one value remains."""
    return mask != 0 and mask & (mask - 1) == 0


def get_value(mask: Mask) -> int:
    """Return the single value of a determined mask, else 0."""
    return mask.bit_length() - 1 if is_value_set(mask) else 0


def min_value(mask: Mask) -> int:
    if mask == 0:
        return 0
    return (mask & -mask).bit_length() - 1


def max_value(mask: Mask) -> int:
    return mask.bit_length() - 1 if mask else 0


def values_of(mask: Mask) -> List[int]:
    """Set values in ascending order."""
    values: List[int] = []
    while mask:
        low = mask & -mask
        values.append(low.bit_length() - 1)
        mask ^= low
    return values


def mask_to_string(mask: Mask) -> str:
    values = values_of(mask)
    if values and values[-1] > 9:
        return ",".join(str(v) for v in values)
    return "".join(str(v) for v in values)
