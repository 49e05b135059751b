"""sandhi: keep one working copy in sync with many git remotes."""

__version__ = "0.3.0"
