"""Command-line entry points for modbusbrowser."""
