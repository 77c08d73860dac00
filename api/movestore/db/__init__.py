"""Database access for the Move Store API."""
