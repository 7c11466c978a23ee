"""Service layer for notes-cli."""
