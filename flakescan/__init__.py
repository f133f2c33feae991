"""Find failed CI builds triggered by the last commits of a range of merged pull requests."""

__version__ = "0.1.0"
