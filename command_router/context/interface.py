"""Pre-pass capability interfaces — both optional collaborators of the router."""

from __future__ import annotations

from abc import ABC, abstractmethod

from command_router.engine.models import DecompositionResult


class PronounResolver(ABC):
    """Tracks entity mentions per conversation and rewrites referring expressions.

    Swap for a persistent or model-backed resolver by implementing this ABC.
    """

    @abstractmethod
    def record(self, conversation_id: str, message: str) -> None: ...

    @abstractmethod
    def resolve(self, conversation_id: str, message: str) -> str: ...


class IntentDecomposer(ABC):
    """Splits a compound message into ordered intents."""

    @abstractmethod
    def decompose(self, message: str) -> DecompositionResult: ...
