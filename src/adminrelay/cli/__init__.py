"""Command line interface for adminrelay."""
