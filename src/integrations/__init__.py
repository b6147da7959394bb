"""External collaborators: asset hosts for uploaded media."""
