"""Podpipe - self-hosted podcast publication pipeline."""

__version__ = "0.1.0"
