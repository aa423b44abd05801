"""Git domain entities."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Commit:
    """Commit entity."""

    hash: str
    author: str
    date: datetime
    message: str
