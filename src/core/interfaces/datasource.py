from abc import ABC, abstractmethod
from typing import List

from src.core.entities.position import Position
from src.core.entities.trade import TradeDataset


class IDataSource(ABC):
    @abstractmethod
    async def get_dataset(self, wallet: str) -> TradeDataset:
        """
        Returns the wallet's trades, fee records and funding payments.
        Implementations drop malformed upstream records and return an
        empty dataset when the upstream is unavailable.
        """
        pass

    @abstractmethod
    async def get_positions(self, wallet: str) -> List[Position]:
        pass

    async def aclose(self):
        """Releases network clients held by the source. Most sources hold none."""
        pass
