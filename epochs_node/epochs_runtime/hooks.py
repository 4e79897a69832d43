"""
epochs_node/epochs_runtime/hooks.py
-----------------------------------

Notification surface for modules that react to epoch boundaries (reward
minting, pool accounting, ...). The tracker only calls these; it never
knows what the receivers do.

Call order on a rollover of epoch N:

    after_epoch_end(identifier, N, ctx)      # before the record is written
    before_epoch_start(identifier, N + 1, ctx)  # after the record is written

On a first start only before_epoch_start(identifier, 1, ctx) fires.

Hook exceptions are not caught here. A failing hook is a failed block.
"""

from __future__ import annotations

from typing import List, Protocol

from .types import BlockContext


class EpochHooks(Protocol):
    def after_epoch_end(self, identifier: str, epoch_number: int, ctx: BlockContext) -> None:
        ...

    def before_epoch_start(self, identifier: str, epoch_number: int, ctx: BlockContext) -> None:
        ...


class NoopEpochHooks:
    def after_epoch_end(self, identifier: str, epoch_number: int, ctx: BlockContext) -> None:
        return None

    def before_epoch_start(self, identifier: str, epoch_number: int, ctx: BlockContext) -> None:
        return None


class MultiEpochHooks:
    """Fan out to several hooks in registration order."""

    def __init__(self, *hooks: EpochHooks) -> None:
        self._hooks: List[EpochHooks] = list(hooks)

    def register(self, hook: EpochHooks) -> None:
        self._hooks.append(hook)

    def __len__(self) -> int:
        return len(self._hooks)

    def after_epoch_end(self, identifier: str, epoch_number: int, ctx: BlockContext) -> None:
        for h in self._hooks:
            h.after_epoch_end(identifier, epoch_number, ctx)

    def before_epoch_start(self, identifier: str, epoch_number: int, ctx: BlockContext) -> None:
        for h in self._hooks:
            h.before_epoch_start(identifier, epoch_number, ctx)
