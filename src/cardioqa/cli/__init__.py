"""Command-line interface for cardioqa."""
