"""Sex codes of pedigree members."""

from enum import IntEnum
from typing import Any
import numpy as np

from ..exceptions import InvalidArgumentError


class Sex(IntEnum):
    """Sex codes of pedigree members."""
    UNKNOWN = 0
    MALE = 1
    FEMALE = 2

    @classmethod
    def coerce(cls, value: Any) -> 'Sex':
        """Convert an int code, a Sex, or 'male'/'female'/'unknown' to Sex."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                pass
            if value.strip().isdigit():
                value = int(value)
        if isinstance(value, (int, np.integer)) and not isinstance(value, bool):
            try:
                return cls(int(value))
            except ValueError:
                pass
        raise InvalidArgumentError(f"Invalid sex code: {value!r}")
