"""
app/alerts/base.py

Abstract interface for instant-message alert backends.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class AlertOutcome:
    """Result of one alert attempt to one phone."""

    phone: str
    delivered: bool
    error: Optional[str] = None


class Alerter(ABC):
    """Sends a single text alert to a single phone identifier."""

    @abstractmethod
    async def send(self, phone: str, text: str) -> None:
        """
        Deliver ``text`` to ``phone``.

        Raises:
            AlertError: The backend rejected or could not be reached.
        """
