from __future__ import annotations


class FetchFailure(Exception):
    """Upstream candidate retrieval failed.

    The ranking service recovers from this locally: the caller receives an
    empty result with the failure attached instead of an exception.
    """

    def __init__(
        self,
        message: str,
        source: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.source = source
        self.cause = cause

    def __str__(self) -> str:
        if self.source:
            return f"{self.source}: {self.message}"
        return self.message
