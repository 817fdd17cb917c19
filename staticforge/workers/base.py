"""
Worker handle protocol.

A worker handle is a proxy to one long-lived worker exposing named
operations. Each operation takes one serializable payload and returns a
serializable result or raises. end() releases the worker; a stage owns its
handle exclusively and ends it exactly once.
"""

from abc import ABC, abstractmethod
from typing import Any


class WorkerHandle(ABC):
    """
    Abstract base class for worker handles.

    Implementations only need call() and end(); the named operations used by
    the build stages are thin wrappers around call().
    """

    def __init__(self, kind: str):
        self.kind = kind
        self.ended = False

    @abstractmethod
    async def call(self, operation: str, payload: dict[str, Any]) -> Any:
        """
        Run a named operation on the worker.

        Args:
            operation: Operation name exported by the worker module
            payload: Serializable payload

        Returns:
            The operation result

        Raises:
            Exception: Whatever the worker operation raised
        """
        pass

    @abstractmethod
    def end(self) -> None:
        """Release the worker. Pending results are abandoned."""
        pass

    async def render(self, payload: dict[str, Any]) -> Any:
        return await self.call("render", payload)

    async def process(self, payload: dict[str, Any]) -> Any:
        return await self.call("process", payload)

    def _check_open(self) -> None:
        if self.ended:
            raise RuntimeError(f"Worker '{self.kind}' has already been ended")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(kind={self.kind}, ended={self.ended})"
