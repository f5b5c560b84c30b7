from __future__ import annotations

from typing import Any


class LarkAPIError(RuntimeError):
    """Lark Open API answered with a non-zero code or an unusable payload."""

    def __init__(self, message: str, code: Any = None):
        super().__init__(message)
        self.code = code
