from __future__ import annotations


class ResolutionError(RuntimeError):
    """Base class for every error raised while resolving from a container."""


class ContainerError(ResolutionError):
    """The identifier exists but cannot be satisfied.

    Raised for non-instantiable targets, unsatisfiable constructor parameters,
    alias cycles and failures raised inside factories.
    """


class NotFoundError(ResolutionError, LookupError):
    """The identifier does not exist in any resolvable form."""
