"""Base class and registry for CLI commands."""

from __future__ import annotations

import argparse
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from gl_reader.models import ReadResult

if TYPE_CHECKING:
    from gl_reader.reader import GitLabUrlReader

# ---------------------------------------------------------------------------
# Command Registry
# ---------------------------------------------------------------------------

_command_registry: dict[str, type[Command]] = {}


def register_command(name: str):
    """Decorator to register a command class under a CLI subcommand name."""

    def decorator(cls):
        _command_registry[name] = cls
        cls.command_name = name
        return cls

    return decorator


def get_command_registry() -> dict[str, type[Command]]:
    """Get the command registry."""
    return _command_registry


# ---------------------------------------------------------------------------
# Command Base Class
# ---------------------------------------------------------------------------


class Command(ABC):
    """Base class for all commands."""

    command_name: str = ""

    def __init__(self, reader: GitLabUrlReader, args: argparse.Namespace):
        self.reader = reader
        self.args = args
        self.logger = logging.getLogger("gl-reader")
        self.results: list[ReadResult] = []

    @staticmethod
    @abstractmethod
    def add_arguments(parser: argparse.ArgumentParser) -> None:
        """Add command-specific CLI arguments."""
        ...

    @abstractmethod
    def run(self, url: str) -> ReadResult:
        """Run the command against a single URL."""
        ...

    def _record(self, result: ReadResult) -> ReadResult:
        self.results.append(result)
        level = logging.INFO if result.status in ("ok", "not_modified") else logging.WARNING
        record = self.logger.makeRecord(self.logger.name, level, "", 0, result.status, (), None)
        record.read_result = result
        self.logger.handle(record)
        return result
