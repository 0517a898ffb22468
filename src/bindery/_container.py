from __future__ import annotations

import importlib
import inspect
import logging
import threading
import typing
from collections.abc import Mapping
from dataclasses import dataclass
from types import UnionType
from typing import (
    TYPE_CHECKING,
    Any,
    Protocol,
    TypeVar,
    Union,
    get_type_hints,
    overload,
)

from ._errors import ContainerError, NotFoundError, ResolutionError


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable

    from ._protocols import Factory, Parameters, Token

T = TypeVar("T")


@dataclass(frozen=True)
class SelfStrategy:
    """Build the bound key's own class through constructor introspection."""


@dataclass(frozen=True)
class RedirectStrategy:
    target: str


@dataclass(frozen=True)
class FactoryStrategy:
    factory: Callable[..., Any]


Strategy = Union[SelfStrategy, RedirectStrategy, FactoryStrategy]


@dataclass
class Binding:
    strategy: Strategy
    singleton: bool = False


def token_key(token: Token) -> str:
    """Normalize a token to the string key it is stored under.

    Classes map to ``"<module>.<qualname>"`` so a class and its dotted path
    address the same entry.
    """
    if isinstance(token, str):
        return token

    if inspect.isclass(token):
        return f"{token.__module__}.{token.__qualname__}"

    msg = f"Tokens must be strings or classes, got {token!r}"
    raise TypeError(msg)


class Container:
    """Inversion-of-control registry.

    - bind keys to themselves, to other keys or to factories
    - singleton / transient bindings
    - pre-built instances and aliases
    - contextual constructor parameters, literal or supplied lazily
    - recursive constructor injection from type annotations.
    """

    def __init__(self) -> None:
        self._bindings: dict[str, Binding] = {}
        self._instances: dict[str, object] = {}
        self._aliases: dict[str, str] = {}
        self._parameters: dict[str, Parameters] = {}
        self._types: dict[str, type] = {}
        self._lock = threading.RLock()

    @classmethod
    def get_container(cls) -> Container:
        """Return the process-wide container, creating it on first use."""
        global _current  # noqa: PLW0603

        with _current_lock:
            if _current is None:
                _current = cls()
            return _current

    @classmethod
    def set_container(cls, container: Container | None = None) -> Container | None:
        global _current  # noqa: PLW0603

        with _current_lock:
            _current = container
        return container

    def bind(
        self,
        token: Token,
        concrete: Token | Factory | None = None,
        parameters: Parameters | None = None,
    ) -> Container:
        """Register a transient binding.

        Example:
          container.bind(Mailer)
          container.bind(MailerInterface, SmtpMailer)
          container.bind("mailer", lambda c, params: SmtpMailer(**params))

        """
        self._make_binding(token, concrete, parameters, singleton=False)
        return self

    def singleton(
        self,
        token: Token,
        concrete: Token | Factory | None = None,
        parameters: Parameters | None = None,
    ) -> Container:
        """Register a binding whose first built value is reused afterwards."""
        self._make_binding(token, concrete, parameters, singleton=True)
        return self

    def alias(self, target: Token, alias: Token) -> Container:
        """Make ``alias`` resolve as ``target``. The target is not checked until resolution."""
        with self._lock:
            self._aliases[self._key(alias)] = self._key(target)
        return self

    def instance(self, token: Token, value: object) -> Container:
        """Register a pre-built value, returned as is on every resolution."""
        with self._lock:
            self._instances[self._key(token)] = value
        return self

    def bind_parameters(self, token: Token, parameters: Parameters) -> Container:
        """Register contextual constructor parameters for a token.

        ``parameters`` is either a mapping or a callable receiving the container
        and returning one. Keys are parameter names, or tokens to substitute
        wherever a parameter is annotated with that type.
        """
        _check_parameters(parameters)
        with self._lock:
            self._parameters[self._key(token)] = parameters
        return self

    def forget(self, token: Token) -> None:
        """Drop the cached instance and the alias registered for a token."""
        with self._lock:
            self._forget(self._key(token))

    def has(self, token: Token) -> bool:
        key = token_key(token)
        with self._lock:
            return key in self._bindings or key in self._aliases or key in self._instances

    @overload
    def get(self, token: type[T]) -> T: ...

    @overload
    def get(self, token: str) -> Any: ...

    def get(self, token: Token) -> Any:
        return self.make(token)

    @overload
    def make(self, token: type[T], parameters: Parameters | None = None) -> T: ...

    @overload
    def make(self, token: str, parameters: Parameters | None = None) -> Any: ...

    def make(self, token: Token, parameters: Parameters | None = None) -> Any:
        """Resolve the token to a value.

        - Aliases are followed first; a cached instance short-circuits everything.
        - Registered and call-site parameters are merged, call-site winning.
        - Redirect bindings resolve their target from scratch, without these parameters.
        - Factories are called with the container and the merged parameters,
          anything else is built by constructor injection.
        - Values of singleton bindings are cached under the alias-resolved key.
        """
        with self._lock:
            key = self._resolve_alias(self._key(token))

            if key in self._instances:
                return self._instances[key]

            merged = self._merge_parameters(key, parameters)

            binding = self._bindings.get(key)
            strategy = binding.strategy if binding is not None else SelfStrategy()

            if isinstance(strategy, RedirectStrategy):
                value = self.make(strategy.target)
            elif isinstance(strategy, FactoryStrategy):
                value = self._call_factory(key, strategy.factory, merged)
            else:
                value = Constructor(self).construct(self._locate(key), merged)

            if binding is not None and binding.singleton:
                logger.debug("Caching singleton [%s]", key)
                self._instances[key] = value

            return value

    def resolve_param(
        self,
        cls: type,
        p: inspect.Parameter,
        hints: dict[str, Any],
        parameters: dict[str, Any],
    ) -> Any:
        """Resolving param.

        Resolution precedence:
        1. parameter supplied by name
        2. class annotation, substituted when the annotated key is a parameter
        3. default
        4. error.
        """
        name = p.name

        # 1) by name
        if name in parameters:
            return parameters[name]

        # 2) class-typed
        ann = hints.get(name, inspect.Parameter.empty)
        dependency = _injectable_class(ann)
        if dependency is not None:
            target = parameters.get(self._key(dependency), dependency)
            if not isinstance(target, str) and not inspect.isclass(target):
                return target

            try:
                return self.make(target)
            except ContainerError:
                if p.default is inspect.Parameter.empty:
                    raise
                logger.debug("Falling back to default for '%s' of %s", name, cls.__qualname__)
                return p.default

        # 3) default
        if p.default is not inspect.Parameter.empty:
            return p.default

        # 4) error
        ann_repr = getattr(ann, "__name__", repr(ann)) if ann is not inspect.Parameter.empty else "no-annotation"
        msg = (
            f"{name} not set. Cannot satisfy constructor parameter '{name}' for {cls.__qualname__} "
            f"(annotation: {ann_repr})."
        )
        raise ContainerError(msg)

    def _make_binding(
        self,
        token: Token,
        concrete: Token | Factory | None,
        parameters: Parameters | None,
        *,
        singleton: bool,
    ) -> None:
        if parameters is not None:
            _check_parameters(parameters)

        with self._lock:
            key = self._key(token)
            strategy = self._strategy_for(key, concrete)

            self._forget(key)
            self._bindings[key] = Binding(strategy=strategy, singleton=singleton)

            if parameters is not None:
                self._parameters[key] = parameters

    def _strategy_for(self, key: str, concrete: Token | Factory | None) -> Strategy:
        if concrete is None:
            return SelfStrategy()

        if isinstance(concrete, str) or inspect.isclass(concrete):
            target = self._key(concrete)
            return SelfStrategy() if target == key else RedirectStrategy(target)

        if callable(concrete):
            return FactoryStrategy(concrete)

        msg = f"Concrete for [{key}] must be a token or a callable, got {concrete!r}"
        raise TypeError(msg)

    def _forget(self, key: str) -> None:
        self._instances.pop(key, None)
        self._aliases.pop(key, None)

    def _key(self, token: Token) -> str:
        key = token_key(token)
        if inspect.isclass(token):
            known = self._types.setdefault(key, token)
            if known is not token:
                msg = f"Key [{key}] already refers to a different class {known!r}"
                raise TypeError(msg)
        return key

    def _resolve_alias(self, key: str) -> str:
        chain = [key]
        while key in self._aliases:
            target = self._aliases[key]
            if target == key:
                msg = f"[{key}] is aliased to itself."
                raise ContainerError(msg)

            if target in chain:
                msg = f"Circular alias: {' -> '.join([*chain, target])}"
                raise ContainerError(msg)

            chain.append(target)
            key = target

        return key

    def _merge_parameters(self, key: str, parameters: Parameters | None) -> dict[str, Any]:
        merged: dict[str, Any] = {}

        registered = self._parameters.get(key)
        if registered is not None:
            merged.update(self._evaluate_parameters(registered))

        if parameters is not None:
            merged.update(self._evaluate_parameters(parameters))

        return merged

    def _evaluate_parameters(self, parameters: Parameters) -> dict[str, Any]:
        if not isinstance(parameters, Mapping):
            _check_parameters(parameters)
            parameters = parameters(self)
            if not isinstance(parameters, Mapping):
                msg = f"Parameter supplier must return a mapping, got {type(parameters).__name__}"
                raise TypeError(msg)

        return {self._key(name): value for name, value in parameters.items()}

    def _call_factory(self, key: str, factory: Callable[..., Any], parameters: dict[str, Any]) -> Any:
        # container errors from nested make calls keep their type, so NotFoundError is not wrapped
        try:
            return factory(self, parameters)
        except ResolutionError:
            raise
        except Exception as exc:
            msg = f"Factory for [{key}] failed: {type(exc).__name__}: {exc}"
            raise ContainerError(msg) from exc

    def _locate(self, key: str) -> type:
        cls = self._types.get(key)
        if cls is None:
            cls = _import_class(key)
            self._types[key] = cls
        return cls


class Constructor:
    def __init__(self, resolver: Container) -> None:
        self._resolver = resolver

    def construct(self, cls: type[T], parameters: dict[str, Any]) -> T:
        if _is_abstract(cls):
            msg = f"Target [{token_key(cls)}] is not instantiable."
            raise ContainerError(msg)

        if cls.__init__ is object.__init__ and cls.__new__ is object.__new__:
            return cls()

        try:
            sig = inspect.signature(cls)
        except (TypeError, ValueError) as exc:
            msg = f"Target [{token_key(cls)}] is not instantiable."
            raise ContainerError(msg) from exc

        hints = _get_init_type_hints(cls)

        args, kwargs = [], {}
        for name, p in sig.parameters.items():
            # *args / **kwargs are never injected
            if p.kind in (p.VAR_POSITIONAL, p.VAR_KEYWORD):
                continue

            value = self._resolver.resolve_param(cls, p, hints, parameters)
            if p.kind is p.POSITIONAL_ONLY:
                args.append(value)
            else:
                kwargs[name] = value

        return cls(*args, **kwargs)


def _import_class(path: str) -> type:
    """Import the class named by a dotted ``module.Class`` path."""
    parts = path.split(".")

    for i in range(len(parts) - 1, 0, -1):
        module_name = ".".join(parts[:i])
        try:
            obj: Any = importlib.import_module(module_name)
        except ModuleNotFoundError as exc:
            # only a missing candidate module (or one of its parents) means "try a shorter path"
            if exc.name is None or not (module_name == exc.name or module_name.startswith(f"{exc.name}.")):
                raise
            continue
        except (ValueError, TypeError):
            continue

        try:
            for attr in parts[i:]:
                obj = getattr(obj, attr)
        except AttributeError as exc:
            msg = f"Unable to resolve [{path}]. {exc}"
            raise NotFoundError(msg) from exc

        if not inspect.isclass(obj):
            msg = f"Unable to resolve [{path}]. It does not name a class."
            raise NotFoundError(msg)

        return obj

    msg = f"Unable to resolve [{path}]. No binding, instance or importable class found."
    raise NotFoundError(msg)


def _check_parameters(parameters: object) -> None:
    if not isinstance(parameters, Mapping) and not callable(parameters):
        msg = f"Parameters must be a mapping or a callable, got {type(parameters).__name__}"
        raise TypeError(msg)


def _injectable_class(ann: object) -> type | None:
    """Return the class to resolve for an annotation, unwrapping ``X | None`` and ``Optional[X]``."""
    if ann is inspect.Parameter.empty:
        return None

    if typing.get_origin(ann) in (Union, UnionType):
        members = [arg for arg in typing.get_args(ann) if arg is not type(None)]
        if len(members) != 1:
            return None
        ann = members[0]

    if inspect.isclass(ann) and ann is not Any and getattr(ann, "__module__", "") != "builtins":
        return ann
    return None


def _is_abstract(cls: type) -> bool:
    return inspect.isabstract(cls) or _is_protocol(cls)


if hasattr(typing, "is_protocol"):
    # https://docs.python.org/3/library/typing.html#typing.is_protocol
    def _is_protocol(tp: type) -> bool:
        return inspect.isclass(tp) and typing.is_protocol(tp)

else:

    def _is_protocol(tp: type) -> bool:
        """Detect whether 'tp' is a typing.Protocol class (safe)."""
        return inspect.isclass(tp) and bool(getattr(tp, "_is_protocol", False)) and tp is not Protocol


def _get_init_type_hints(cls: type) -> dict[str, Any]:
    try:
        init = inspect.getattr_static(cls, "__init__")
        hints = get_type_hints(init)
    except TypeError:
        hints = {}
    except NameError as exc:
        logger.warning("'%s' name error retrieving %s (%s) type hints", exc.name, cls.__name__, cls.__qualname__)
        hints = {}

    return hints


_current: Container | None = None
_current_lock = threading.Lock()


def get_container() -> Container:
    """Return the process-wide container, creating it on first use."""
    return Container.get_container()


def set_container(container: Container | None = None) -> Container | None:
    """Replace the process-wide container; ``None`` resets it."""
    return Container.set_container(container)
