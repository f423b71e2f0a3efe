"""Command-line commands for runkit."""
