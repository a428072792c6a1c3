"""Disposable webhook sink: tokenized capture-and-replay endpoints."""

__version__ = "0.1.0"
