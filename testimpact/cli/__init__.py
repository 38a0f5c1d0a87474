"""Command line interface for testimpact."""
