from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence


class Provider(ABC):
    """Base provider interface"""
    
    name: str
    timeout_s: float = 10
    
    @abstractmethod
    async def ready(self) -> bool:
        """Check if provider is ready to serve requests"""
        pass
    
    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Return provider health status"""
        pass


class LogSourceProvider(Provider):
    """Provider for on-chain transfer logs and ERC-20 reads"""
    
    @abstractmethod
    async def block_number(self) -> int:
        """Current chain head"""
        pass
    
    @abstractmethod
    async def get_block_timestamp(self, block_number: int) -> int:
        """Unix timestamp of a block"""
        pass
    
    @abstractmethod
    async def get_logs(
        self,
        address: str,
        from_block: int,
        to_block: int,
        topics: Sequence[Optional[Any]],
    ) -> List[Dict[str, Any]]:
        """Raw eth_getLogs entries for a contract and block range"""
        pass
    
    @abstractmethod
    async def token_decimals(self, token_address: str) -> int:
        """ERC-20 decimals()"""
        pass


class MarketDataProvider(Provider):
    """Provider for token price / liquidity snapshots"""
    
    @abstractmethod
    async def get_snapshot(self, token_address: str) -> Dict[str, Any]:
        """Return the normalized market snapshot for a token"""
        pass
