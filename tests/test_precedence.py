import unittest
from typing import Optional

import pytest

from bindery import Container, ContainerError, NotFoundError
from container_fixtures import (
    FALLBACK,
    Dependency,
    DependencyInterface,
    DependencyNested,
    Fixture,
    FixtureWithFallback,
)


class TestParameterPrecedence(unittest.TestCase):
    cont: Container

    def setUp(self):
        self.cont = Container()

    def test_contextual_parameters_apply_to_constructor(self):
        self.cont.bind_parameters(Dependency, {"info": "test"})
        assert self.cont.make(Dependency).info == "test"

    def test_call_site_parameters_override_contextual_parameters(self):
        self.cont.bind_parameters(Dependency, {"info": "test"})
        assert self.cont.make(Dependency, {"info": "override"}).info == "override"

    def test_call_site_parameters_merge_with_contextual_parameters(self):
        class Pair:
            def __init__(self, left: str, right: str):
                self.left = left
                self.right = right

        self.cont.bind_parameters(Pair, {"left": "l", "right": "r"})
        pair = self.cont.make(Pair, {"right": "override"})

        assert pair.left == "l"
        assert pair.right == "override"

    def test_contextual_parameters_through_interface_binding(self):
        self.cont.bind("fixture", Fixture)
        self.cont.bind(DependencyInterface, Dependency)
        self.cont.bind_parameters(Dependency, {"info": "test"})

        assert self.cont.get("fixture").dependency.info == "test"

    def test_supplier_is_evaluated_against_the_container(self):
        self.cont.instance("greeting", "hello")
        self.cont.bind_parameters(Dependency, lambda c: {"info": c.make("greeting")})

        assert self.cont.make(Dependency).info == "hello"

    def test_supplier_is_evaluated_lazily(self):
        calls = []

        def supplier(container):
            calls.append(container)
            return {"info": f"call {len(calls)}"}

        self.cont.bind_parameters(Dependency, supplier)
        assert calls == []

        assert self.cont.make(Dependency).info == "call 1"
        assert self.cont.make(Dependency).info == "call 2"
        assert calls == [self.cont, self.cont]

    def test_call_site_supplier(self):
        dep = self.cont.make(Dependency, lambda c: {"info": "supplied"})
        assert dep.info == "supplied"

    def test_supplier_returning_non_mapping_raises_type_error(self):
        self.cont.bind_parameters(Dependency, lambda c: ["info"])
        with pytest.raises(TypeError):
            self.cont.make(Dependency)

    def test_bind_parameters_rejects_invalid_parameters(self):
        with pytest.raises(TypeError):
            self.cont.bind_parameters(Dependency, 42)

    def test_bind_with_parameters_replaces_contextual_parameters(self):
        self.cont.bind_parameters(Dependency, {"info": "first"})
        self.cont.bind(Dependency, parameters={"info": "second"})

        assert self.cont.make(Dependency).info == "second"

    def test_bind_without_parameters_keeps_contextual_parameters(self):
        self.cont.bind_parameters(Dependency, {"info": "kept"})
        self.cont.bind(Dependency)

        assert self.cont.make(Dependency).info == "kept"

    def test_redirect_does_not_forward_parameters(self):
        self.cont.bind(DependencyInterface, Dependency, {"info": "test"})
        assert self.cont.make(DependencyInterface).info == "default"
        assert self.cont.make(DependencyInterface, {"info": "override"}).info == "default"

    def test_factory_receives_merged_parameters(self):
        self.cont.bind(
            "fixture",
            lambda c, parameters: Fixture(c.make(Dependency, parameters)),
            {"info": "test"},
        )
        assert self.cont.get("fixture").dependency.info == "test"

        fixture = self.cont.make("fixture", {"info": "override"})
        assert fixture.dependency.info == "override"

    def test_named_parameter_overrides_class_typed_parameter(self):
        dep = Dependency("prebuilt")
        fixture = self.cont.make(Fixture, {"dependency": dep})
        assert fixture.dependency is dep

    def test_named_parameter_can_be_none(self):
        fixture = self.cont.make(Fixture, {"dependency": None})
        assert fixture.dependency is None

    def test_type_key_substitutes_another_class(self):
        self.cont.bind_parameters(Fixture, {DependencyInterface: Dependency})
        assert isinstance(self.cont.make(Fixture).dependency, Dependency)

    def test_type_key_substitutes_dotted_path(self):
        fixture = self.cont.make(Fixture, {"container_fixtures.DependencyInterface": "container_fixtures.Dependency"})
        assert isinstance(fixture.dependency, Dependency)

    def test_type_key_substitutes_prebuilt_value(self):
        dep = Dependency("prebuilt")
        fixture = self.cont.make(Fixture, {DependencyInterface: dep})
        assert fixture.dependency is dep

    def test_name_takes_precedence_over_type_key(self):
        by_name = Dependency("by name")
        fixture = self.cont.make(Fixture, {"dependency": by_name, DependencyInterface: DependencyNested})
        assert fixture.dependency is by_name

    def test_default_value_used_for_untyped_parameter(self):
        class WithDefault:
            def __init__(self, port=5555):
                self.port = port

        assert self.cont.make(WithDefault).port == 5555

    def test_override_default_argument(self):
        class WithDefault:
            def __init__(self, port: int = 5555):
                self.port = port

        assert self.cont.make(WithDefault, {"port": 9898}).port == 9898


class TestDefaultFallback(unittest.TestCase):
    cont: Container

    def setUp(self):
        self.cont = Container()

    def test_container_error_falls_back_to_default(self):
        fixture = self.cont.make(FixtureWithFallback)
        assert fixture.dependency is FALLBACK

    def test_bound_dependency_wins_over_default(self):
        self.cont.bind(DependencyInterface, Dependency)
        fixture = self.cont.make(FixtureWithFallback)
        assert fixture.dependency is not FALLBACK
        assert fixture.dependency.info == "default"

    def test_not_found_does_not_fall_back_to_default(self):
        self.cont.bind_parameters(FixtureWithFallback, {DependencyInterface: "no_such_module.Dependency"})
        with pytest.raises(NotFoundError):
            self.cont.make(FixtureWithFallback)

    def test_missing_class_dependency_without_default_raises(self):
        class Service:
            def __init__(self, dependency: DependencyInterface):
                self.dependency = dependency

        with pytest.raises(ContainerError):
            self.cont.make(Service)

    def test_unresolvable_annotation_without_default_raises(self):
        class Service:
            def __init__(self, name: str):
                self.name = name

        with pytest.raises(ContainerError) as ctx:
            self.cont.make(Service)
        assert "Cannot satisfy constructor parameter 'name'" in str(ctx.value)

    def test_untyped_required_parameter_raises(self):
        class Service:
            def __init__(self, name):
                self.name = name

        with pytest.raises(ContainerError) as ctx:
            self.cont.make(Service)
        assert "name not set" in str(ctx.value)

    def test_untyped_parameter_is_not_resolved_from_the_container(self):
        class Service:
            def __init__(self, port=5555, host=None):
                self.port = port
                self.host = host

        service = self.cont.make(Service)
        assert service.port == 5555
        assert service.host is None


class TestOptionalDependencies(unittest.TestCase):
    cont: Container

    def setUp(self):
        self.cont = Container()

    def test_optional_with_default_is_resolved_when_bound(self):
        class Service:
            def __init__(self, dependency: Optional[DependencyInterface] = None):
                self.dependency = dependency

        self.cont.bind(DependencyInterface, Dependency)
        assert isinstance(self.cont.make(Service).dependency, Dependency)

    def test_optional_with_default_falls_back_when_unbound(self):
        class Service:
            def __init__(self, dependency: Optional[DependencyInterface] = None):
                self.dependency = dependency

        assert self.cont.make(Service).dependency is None

    def test_union_with_none_without_default_is_resolved(self):
        class Service:
            def __init__(self, dependency: DependencyInterface | None):
                self.dependency = dependency

        self.cont.bind(DependencyInterface, Dependency)
        assert isinstance(self.cont.make(Service).dependency, Dependency)

    def test_union_with_none_without_default_raises_when_unbound(self):
        class Service:
            def __init__(self, dependency: DependencyInterface | None):
                self.dependency = dependency

        with pytest.raises(ContainerError):
            self.cont.make(Service)

    def test_union_of_several_classes_is_not_resolved(self):
        class Service:
            def __init__(self, dependency: Dependency | DependencyNested | None = None):
                self.dependency = dependency

        assert self.cont.make(Service).dependency is None
