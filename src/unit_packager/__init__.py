"""Deployment artifact packager for functions and shared layers."""

__version__ = "0.1.0"
