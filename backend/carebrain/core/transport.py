"""
Transport interface for talking to the brain backend
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class SupabaseError(Exception):
    """Raised when a backend call fails at the HTTP or network level"""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class BrainTransport(ABC):
    """Remote procedure calls and table reads against the brain backend"""

    @abstractmethod
    async def rpc(self, function_name: str, params: Dict[str, Any]) -> Any:
        """
        Invoke a remote procedure

        Raises:
            SupabaseError: on network failure or an HTTP error response
        """

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Read rows matching equality filters

        Raises:
            SupabaseError: on network failure or an HTTP error response
        """

    async def health_check(self) -> bool:
        """Whether the backend answers; in-process backends always do"""
        return True

    async def close(self) -> None:
        """Release network resources"""
