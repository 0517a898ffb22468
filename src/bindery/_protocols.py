from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable


if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    Token = type | str
    Parameters = Mapping[Any, Any] | Callable[..., Mapping[Any, Any]]


@runtime_checkable
class ServiceLocator(Protocol):
    """Lookup contract for code that only needs to fetch entries by identifier."""

    def get(self, token: Token) -> Any: ...

    def has(self, token: Token) -> bool: ...


@runtime_checkable
class ContainerProtocol(ServiceLocator, Protocol):
    def bind(
        self,
        token: Token,
        concrete: Token | Factory | None = None,
        parameters: Parameters | None = None,
    ) -> ContainerProtocol: ...

    def singleton(
        self,
        token: Token,
        concrete: Token | Factory | None = None,
        parameters: Parameters | None = None,
    ) -> ContainerProtocol: ...

    def bind_parameters(self, token: Token, parameters: Parameters) -> ContainerProtocol: ...

    def instance(self, token: Token, value: object) -> ContainerProtocol: ...

    def alias(self, target: Token, alias: Token) -> ContainerProtocol: ...

    def make(self, token: Token, parameters: Parameters | None = None) -> Any: ...


class Factory(Protocol):
    """Construction strategy called with the container and the merged parameters."""

    def __call__(self, container: ContainerProtocol, parameters: dict[str, Any], /) -> Any: ...


class ParameterSupplier(Protocol):
    """Deferred contextual parameters, evaluated against the live container."""

    def __call__(self, container: ContainerProtocol, /) -> Mapping[Any, Any]: ...
