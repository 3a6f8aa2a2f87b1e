# SpawnKeeper - Process Supervisor
# Copyright (C) 2026 SpawnKeeper Authors
# SPDX-License-Identifier: Apache-2.0

"""Registry of handles that every forked child must close before its task body runs.

Collaborators such as connection pools or listening sockets register their
handles here; the Process Handle closes them right after ``fork()`` so the
child does not share them with the supervisor.
"""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)


class ClosableResources:
    """Explicit collection of resources to close in forked children."""

    def __init__(self) -> None:
        self._resources: list[Any] = []

    def register(self, resource: Any) -> None:
        self._resources.append(resource)

    def unregister(self, resource: Any) -> None:
        try:
            self._resources.remove(resource)
        except ValueError:
            pass

    def __len__(self) -> int:
        return len(self._resources)

    def close_all(self) -> int:
        """Close every registered resource that is still open.

        Resources that are ``None``, already closed, or without a ``close``
        method are skipped.  Errors raised by ``close()`` are ignored.

        Returns:
            Number of resources that were closed successfully.
        """
        closed = 0
        for resource in self._resources:
            if resource is None:
                continue
            close = getattr(resource, "close", None)
            if not callable(close):
                continue
            if getattr(resource, "closed", False) is True:
                continue
            try:
                close()
                closed += 1
            except Exception:
                logger.debug("Ignoring close() failure for %r", resource, exc_info=True)
        return closed
