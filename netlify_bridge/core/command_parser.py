"""
Slash command parsing.
"""

from typing import List, NamedTuple


class ParsedCommand(NamedTuple):
    base_command: str
    action: str
    parameters: List[str]


def transform_command_to_action(command: str) -> ParsedCommand:
    """
    Split a command line into base command, action and parameters.

    "/netlify list id" becomes ("/netlify", "list", ["id"]). Missing
    parts are empty; runs of whitespace are treated as one separator.
    """
    arguments = command.split()

    base_command = arguments[0] if arguments else ""
    action = arguments[1] if len(arguments) > 1 else ""
    parameters = arguments[2:]

    return ParsedCommand(base_command, action, parameters)
