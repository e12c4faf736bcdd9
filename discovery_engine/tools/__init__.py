"""External collaborator contracts."""
