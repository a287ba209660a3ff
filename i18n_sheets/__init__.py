"""Sync i18n JSON translation files with a Google Sheet."""

__version__ = "0.1.0"
