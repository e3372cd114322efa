"""Command line interface for branchkit."""
