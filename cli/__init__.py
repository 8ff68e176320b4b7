"""Command-line interface for the AI decision pipeline."""
