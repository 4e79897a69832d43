# epochs_node/epochs_runtime/__init__.py
from __future__ import annotations

"""
Epochs runtime package (lazy import)

Everything under this package is consensus-critical: it must be a pure
function of stored records and the block context handed in by the host.
No wall-clock reads, no randomness, no I/O besides the store adapter.

It provides lazy module attribute access via __getattr__ (PEP 562) so that
`from epochs_node import epochs_runtime; epochs_runtime.tracker` works
without importing every module up front.
"""

from importlib import import_module
from typing import Any

__all__ = [
    "types",
    "codec",
    "tracker",
    "hooks",
    "genesis",
    "handler",
]

_LAZY_MAP = {
    "types": "epochs_node.epochs_runtime.types",
    "codec": "epochs_node.epochs_runtime.codec",
    "tracker": "epochs_node.epochs_runtime.tracker",
    "hooks": "epochs_node.epochs_runtime.hooks",
    "genesis": "epochs_node.epochs_runtime.genesis",
    "handler": "epochs_node.epochs_runtime.handler",
}


def __getattr__(name: str) -> Any:
    mod_path = _LAZY_MAP.get(name)
    if not mod_path:
        raise AttributeError(name)
    return import_module(mod_path)


def __dir__() -> list[str]:
    return sorted(set(globals().keys()) | set(_LAZY_MAP.keys()))
