"""
Result wrapper: standardized success/failure responses with HTTP status codes.
"""

from .extensions import to_result, to_result_async
from .result import Result

__all__ = ["Result", "to_result", "to_result_async"]
