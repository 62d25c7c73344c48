"""Synchronous command bridges to a co-located render backend.

A bridge invokes a named backend command with keyword arguments and returns its
decoded JSON result. Failures are reported as BridgeError.
"""

from __future__ import annotations

import abc
import json
import logging
import shlex
import shutil
import subprocess
from collections.abc import Callable, Sequence
from typing import Any

from ..errors import BridgeError

logger = logging.getLogger(__name__)


class Bridge(abc.ABC):
    """Abstract command bridge."""

    @abc.abstractmethod
    def invoke(self, command: str, args: dict[str, Any]) -> Any:
        """Run a backend command.

        Args:
            command: Command name, e.g. 'upload_images'
            args: Command arguments

        Returns:
            Decoded command result

        Raises:
            BridgeError: If the command fails or cannot be started
        """

    def is_available(self) -> bool:
        return True


class InProcessBridge(Bridge):
    """Bridge dispatching to Python callables registered in the same process."""

    def __init__(self) -> None:
        self._commands: dict[str, Callable[..., Any]] = {}

    def register(self, command: str, handler: Callable[..., Any] | None = None) -> Any:
        """Register a command handler, usable as a decorator.

        Handlers receive the command arguments as keyword arguments. Raising any
        exception marks the command as failed.
        """
        if handler is not None:
            self._commands[command] = handler
            return handler

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self._commands[command] = func
            return func

        return decorator

    def invoke(self, command: str, args: dict[str, Any]) -> Any:
        handler = self._commands.get(command)
        if handler is None:
            raise BridgeError(command, "unknown command")
        try:
            return handler(**args)
        except BridgeError:
            raise
        except Exception as e:
            raise BridgeError(command, str(e) or e.__class__.__name__) from e


class SubprocessBridge(Bridge):
    """Bridge running a backend executable once per command.

    The executable is called as ``<executable> <command>`` with the JSON
    encoded arguments on stdin. It must print the JSON encoded result on stdout
    and exit with status 0; otherwise stderr carries the error message.
    """

    def __init__(self, executable: str | Sequence[str], timeout: float | None = None) -> None:
        """Initialize the bridge.

        Args:
            executable: Command line of the backend, as a string or argument list
            timeout: Optional timeout in seconds for a single command
        """
        if isinstance(executable, str):
            executable = shlex.split(executable)
        self.argv: list[str] = list(executable)
        self.timeout = timeout

    def is_available(self) -> bool:
        return bool(self.argv) and shutil.which(self.argv[0]) is not None

    def invoke(self, command: str, args: dict[str, Any]) -> Any:
        logger.debug("Invoking backend command %s", command)
        try:
            completed = subprocess.run(
                [*self.argv, command],
                input=json.dumps(args),
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as e:
            raise BridgeError(
                command, f"backend executable not found: {self.argv[0]}", reachable=False
            ) from e
        except subprocess.TimeoutExpired as e:
            raise BridgeError(command, f"timed out after {self.timeout}s") from e

        if completed.returncode != 0:
            reason = completed.stderr.strip() or f"exit status {completed.returncode}"
            raise BridgeError(command, reason)

        try:
            return json.loads(completed.stdout)
        except ValueError as e:
            raise BridgeError(command, f"invalid JSON output: {completed.stdout[:200]}") from e
