class ExpressionError(Exception):
    """Base class for everything the parser and simplifier raise."""


class ParseError(ExpressionError, ValueError):
    def __init__(self, message: str, source: str = ""):
        super().__init__(f"{message}: {source!r}" if source else message)
        self.source = source


class RecursionDepthExceeded(ExpressionError, RecursionError):
    """
    Raised when the simplifier descends past its depth ceiling.

    This is a safety abort for pathologically deep input, not a condition
    callers are expected to recover from mid-simplification.
    """

    def __init__(self, depth: int, limit: int):
        super().__init__(f"recursion depth exceeded ({depth} >= {limit})")
        self.depth = depth
        self.limit = limit
