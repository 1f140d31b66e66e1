# tenant_relay/turns/runtime.py
from abc import ABC, abstractmethod
from typing import List

from .models import ProviderCredentials, RuntimeOutput


class AbstractRuntimeClient(ABC):
    """
    Conversational runtime the relay forwards utterances to.

    Implementations own the HTTP protocol and the translation of runtime
    steps into ``RuntimeOutput`` items.
    """

    @abstractmethod
    async def interact(
        self,
        user_id: str,
        utterance: str,
        credentials: ProviderCredentials
    ) -> List[RuntimeOutput]:
        pass

    async def teardown(self) -> None:
        pass
