"""Inversion-of-control container.

This package provides a small registry that maps identifiers (strings or
classes) to construction strategies and builds fully wired instances on
request, resolving constructor dependencies from type annotations.

Exports:
- `Container`: the registry; `bind`, `singleton`, `alias`, `instance`,
  `bind_parameters`, `forget`, `has`, `make` and `get`.
- `get_container` / `set_container`: process-wide default container.
- `ContainerError`, `NotFoundError`, `ResolutionError`: error taxonomy.
- `ServiceLocator`, `ContainerProtocol`, `Factory`, `ParameterSupplier`:
  structural types for code that consumes or extends a container.
"""

from ._container import Container, get_container, set_container, token_key
from ._errors import ContainerError, NotFoundError, ResolutionError
from ._protocols import ContainerProtocol, Factory, ParameterSupplier, ServiceLocator


__all__ = [
    "Container",
    "ContainerError",
    "ContainerProtocol",
    "Factory",
    "NotFoundError",
    "ParameterSupplier",
    "ResolutionError",
    "ServiceLocator",
    "get_container",
    "set_container",
    "token_key",
]
