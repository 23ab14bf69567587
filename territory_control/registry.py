"""
CommandRegistry - Explicit command registration for the territory service

Bounded Context: Command registration and validation

Every command the service understands is registered explicitly at startup,
so an unknown command is rejected before any handler runs and the full
command list can be reported back to the caller.

Registration takes a lock; lookups read a dict.
"""

import re
import threading
from typing import Any, Callable, Dict, Optional, Set


_COMMAND_NAME = re.compile(r"^[a-z][a-z0-9_]*$")

CommandHandler = Callable[[Dict[str, Any]], Any]


class CommandNotAvailableError(Exception):
    """Command name has no registered handler."""


class CommandRegistry:
    """
    Registry of control commands with explicit registration.

    Handlers receive the full JSON payload of the command message (an empty
    dict when the command carried no data) and may return a result, which
    execute() hands back to the caller.

    Example:
        registry = CommandRegistry()
        registry.register('create_layer', service.handle_create_layer,
                          "Create a new layer and make it active")

        result = registry.execute('create_layer', {"name": "Downtown"})
        # {"applied": True, "layer_id": 2, ...}
    """

    def __init__(self):
        self._commands: Dict[str, CommandHandler] = {}
        self._descriptions: Dict[str, str] = {}
        self._lock = threading.Lock()

    def register(self, command: str, handler: CommandHandler, description: str) -> None:
        """
        Register a command with its handler function.

        Args:
            command: Command name (lowercase, snake_case)
            handler: Callable taking the command payload dict
            description: Human-readable description for help text

        Raises:
            ValueError: If the name is malformed or already registered
        """
        if not _COMMAND_NAME.match(command):
            raise ValueError(f"Invalid command name '{command}' (expected snake_case)")

        with self._lock:
            if command in self._commands:
                raise ValueError(f"Command '{command}' already registered")

            self._commands[command] = handler
            self._descriptions[command] = description

    def execute(self, command: str, command_data: Optional[Dict[str, Any]] = None) -> Any:
        """
        Execute a registered command.

        Args:
            command: Command name to execute
            command_data: Command payload (full JSON message)

        Returns:
            Whatever the handler returns

        Raises:
            CommandNotAvailableError: If command not registered
        """
        handler = self._commands.get(command)
        if handler is None:
            raise CommandNotAvailableError(
                f"Command '{command}' not available. "
                f"Available commands: {', '.join(sorted(self.available_commands))}"
            )

        return handler(command_data if command_data is not None else {})

    def is_available(self, command: str) -> bool:
        return command in self._commands

    @property
    def available_commands(self) -> Set[str]:
        """Snapshot of all registered command names."""
        return set(self._commands.keys())

    def get_help(self) -> Dict[str, str]:
        """Commands mapped to their descriptions, sorted by name."""
        return {name: self._descriptions[name] for name in sorted(self._descriptions)}

    def count(self) -> int:
        return len(self._commands)
