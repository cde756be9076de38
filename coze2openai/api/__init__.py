"""
API Module Initialization
"""

from coze2openai.api.completions import create_router

__all__ = [
    "create_router",
]
