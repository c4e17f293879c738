"""
Exception handlers for the Mini Engine server.

This package contains the last-resort exception handler and a setup function
to register it with the FastAPI application.
"""

from .global_handler import setup_exception_handlers

__all__ = ["setup_exception_handlers"]
