"""Core operations: release resolution, installation, auto-update and dispatch."""
