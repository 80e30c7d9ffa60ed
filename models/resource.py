# filterdir/models/resource.py
# Purpose: Entry metadata returned by stat and directory listings.
from __future__ import annotations

import time

from pydantic import BaseModel, Field


class ResourceInfo(BaseModel):
    name: str
    size: int = 0
    is_dir: bool = False
    modified: float = Field(default_factory=time.time)
