"""Configuration package for the wealth valuation engine."""

from .settings import AppSettings, get_settings

__all__ = ["AppSettings", "get_settings"]
