"""Kontur Senders - SMS and email alert notifications through kontur gateways."""

__version__ = "0.1.0"
