"""
Coze2OpenAI

OpenAI-compatible Chat Completions gateway backed by Coze bots.
"""

__version__ = "0.1.0"
