"""Command line interface for cert-lifecycle."""
