"""
metacrud back end: configuration, logging, persistence and services.
"""

from .config import AppConfig, load_config

__all__ = ["AppConfig", "load_config"]
