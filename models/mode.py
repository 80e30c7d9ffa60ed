from __future__ import annotations

from enum import Enum


class Mode(str, Enum):
    """Operating mode of an overlay, fixed when the overlay is built."""

    DISCOVERY = "discovery"
    FILTER = "filter"
