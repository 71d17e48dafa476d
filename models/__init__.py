# models/__init__.py
from models.digest import DigestRunResult, Message, MergeResult

__all__ = ["DigestRunResult", "Message", "MergeResult"]
