"""Touchless: unattended, self-healing server provisioning."""

__version__ = "0.1.0"
__author__ = "Touchless Team"

__all__ = ["__version__", "__author__"]
