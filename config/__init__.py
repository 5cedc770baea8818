"""
Configuration package for the Azure DevOps workflow tool.
"""

from .config import Config

__all__ = [
    'Config'
]
