"""Loaders that turn exported transaction files into validated records."""
