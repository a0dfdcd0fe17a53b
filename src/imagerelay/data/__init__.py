"""Bundled data files (model catalogue)."""
