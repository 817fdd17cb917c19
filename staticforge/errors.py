"""
Error classes for staticforge builds.

Every failure is terminal for the run: there are no retries anywhere in the
build pipeline. These types exist so callers (the CLI, hooks, tests) can tell
where a build died:
- ConfigError: Configuration missing or invalid
- HookError: A plugin hook raised
- WorkerDispatchError: A worker RPC failed; the worker was already ended
- CompilerError: The asset compiler command failed

Filesystem errors are not wrapped and propagate as OSError.
"""

from typing import Optional


class StaticforgeError(Exception):
    """Base exception for staticforge."""
    pass


class ConfigError(StaticforgeError):
    """Configuration validation error."""
    pass


class HookError(StaticforgeError):
    """
    A registered hook handler raised.

    The original exception is kept as __cause__.
    """

    def __init__(self, hook: str, handler: str, message: str):
        self.hook = hook
        self.handler = handler
        super().__init__(f"Hook '{hook}' failed in {handler}: {message}")


class WorkerDispatchError(StaticforgeError):
    """
    A chunk dispatched to a worker was rejected.

    Raised by a stage after its worker session has been ended.
    """

    def __init__(self, worker: str, operation: str, message: str, chunk_index: Optional[int] = None):
        self.worker = worker
        self.operation = operation
        self.chunk_index = chunk_index
        where = f" (chunk {chunk_index})" if chunk_index is not None else ""
        super().__init__(f"Worker '{worker}' failed in {operation}{where}: {message}")


class CompilerError(StaticforgeError):
    """The asset compiler exited with an error."""
    pass
