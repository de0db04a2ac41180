"""Interface layer for Solgreet (command-line entry points)."""
