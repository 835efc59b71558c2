"""
Tests for slash command parsing.
"""

from netlify_bridge.core.command_parser import ParsedCommand, transform_command_to_action


class TestTransformCommandToAction:
    """Tests for transform_command_to_action."""

    def test_base_command_action_and_parameters(self):
        """Should split a full command line."""
        parsed = transform_command_to_action("/netlify list id")

        assert parsed == ParsedCommand("/netlify", "list", ["id"])

    def test_base_command_only(self):
        """Should leave action and parameters empty."""
        parsed = transform_command_to_action("/netlify")

        assert parsed.base_command == "/netlify"
        assert parsed.action == ""
        assert parsed.parameters == []

    def test_empty_line(self):
        """Should return empty parts for an empty command."""
        parsed = transform_command_to_action("")

        assert parsed == ParsedCommand("", "", [])

    def test_repeated_whitespace(self):
        """Should treat runs of whitespace as a single separator."""
        parsed = transform_command_to_action("  /netlify   deploy    site-123  ")

        assert parsed.action == "deploy"
        assert parsed.parameters == ["site-123"]

    def test_multiple_parameters(self):
        """Should keep every parameter in order."""
        parsed = transform_command_to_action("/netlify deploy a b c")

        assert parsed.parameters == ["a", "b", "c"]
