"""Check that a rebuilt object file reproduces a reference binary's functions."""

__version__ = "0.1.0"
