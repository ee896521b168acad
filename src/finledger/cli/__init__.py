"""Command-line interface for finledger."""
