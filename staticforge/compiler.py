"""
Asset compiler adapters.

The asset compiler itself is an external tool. The build only needs an object
with an async run() returning something with a `hash`:
- CommandCompiler runs a configured shell command in the site directory
- NullCompiler is used when no command is configured
"""

import asyncio
import hashlib
import json
import shlex
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

from staticforge.errors import CompilerError
from staticforge.models import CompileResult
from staticforge.utils import get_file_checksum, get_logger

logger = get_logger("compiler")

HASH_LENGTH = 20


class Compiler(ABC):
    """Base class for asset compilers."""

    @abstractmethod
    async def run(self) -> CompileResult:
        """
        Compile client and server assets.

        Returns:
            CompileResult with the build hash

        Raises:
            CompilerError: If compilation fails
        """
        pass


class CommandCompiler(Compiler):
    """
    Runs an external compiler command, e.g. `npm run build:assets`.

    The build hash is derived from the client manifest the command produces,
    falling back to the command output when no manifest exists.
    """

    def __init__(
        self,
        command: Union[str, list[str]],
        cwd: Path,
        manifest_path: Optional[Path] = None,
        env: Optional[dict[str, str]] = None,
    ):
        self.command = shlex.split(command) if isinstance(command, str) else list(command)
        self.cwd = Path(cwd)
        self.manifest_path = manifest_path
        self.env = env

        if not self.command:
            raise ValueError("Compiler command must not be empty")

    async def run(self) -> CompileResult:
        start_time = time.perf_counter()

        logger.debug(
            f"Running compiler: {' '.join(self.command)}",
            extra={"event": "compiler_started", "metadata": {"command": self.command, "cwd": str(self.cwd)}},
        )

        try:
            proc = await asyncio.create_subprocess_exec(
                *self.command,
                cwd=self.cwd,
                env=self.env,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise CompilerError(f"Compiler command not found: {self.command[0]}") from e

        stdout, stderr = await proc.communicate()

        if proc.returncode != 0:
            tail = stderr.decode(errors="replace").strip()[-500:]
            raise CompilerError(
                f"Compiler exited with code {proc.returncode}: {tail or '(no output)'}"
            )

        if self.manifest_path is not None and self.manifest_path.exists():
            digest = get_file_checksum(self.manifest_path)
        else:
            digest = hashlib.sha256(stdout).hexdigest()

        return CompileResult(
            hash=digest[:HASH_LENGTH],
            duration_seconds=time.perf_counter() - start_time,
        )


class NullCompiler(Compiler):
    """Compiler for sites without a compile step. Hash follows the given settings."""

    def __init__(self, settings: Optional[dict] = None):
        self.settings = settings or {}

    async def run(self) -> CompileResult:
        digest = hashlib.sha256(
            json.dumps(self.settings, sort_keys=True, default=str).encode()
        ).hexdigest()
        return CompileResult(hash=digest[:HASH_LENGTH])
