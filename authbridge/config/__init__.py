"""Configuration module for the Better Auth bridge."""
from .settings import AppConfig, load_settings

__all__ = ["AppConfig", "load_settings"]
