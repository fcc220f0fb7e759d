"""Commands for gl-reader."""

from gl_reader.commands.base import Command, get_command_registry, register_command

# Import all commands to register them
from gl_reader.commands.read_tree import ReadTreeCommand
from gl_reader.commands.read_url import ReadUrlCommand
from gl_reader.commands.search import SearchCommand

__all__ = [
    "Command",
    "register_command",
    "get_command_registry",
    "ReadUrlCommand",
    "ReadTreeCommand",
    "SearchCommand",
]
