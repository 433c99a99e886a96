"""Services module for Nest insights."""
