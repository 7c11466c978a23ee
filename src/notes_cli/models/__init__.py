"""Data models for notes-cli."""
