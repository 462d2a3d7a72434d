from __future__ import annotations

import threading
from typing import Optional

from crudflow.errors import PipelineCancelledError


class CancellationToken:
    """Cooperative cancellation flag shared by every step of a run.

    A child token is cancelled when either it or any ancestor is cancelled,
    so a single prompt can be abandoned without cancelling the run.
    """

    def __init__(self, parent: Optional["CancellationToken"] = None) -> None:
        self._event = threading.Event()
        self._parent = parent

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._parent is not None and self._parent.cancelled

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise PipelineCancelledError("Pipeline run was cancelled")

    def child(self) -> "CancellationToken":
        return CancellationToken(parent=self)
