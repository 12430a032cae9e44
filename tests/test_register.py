"""
Tests for the service register, factory and process-wide state.
"""

import logging
import sys
import types
from unittest.mock import Mock

import pytest

from cms_backoffice.composing.current import Current
from cms_backoffice.composing.register import (
    Lifetime,
    RegisterFactory,
    ServiceFactory,
    ServiceRegister,
)
from cms_backoffice.config import GlobalSettings


class Clock:
    pass


class Scheduler:
    def __init__(self, clock):
        self.clock = clock
        self.closed = False

    def close(self):
        self.closed = True


class CustomRegister(ServiceRegister):
    pass


class TestServiceRegister:
    def test_transient_creates_new_instances(self):
        register = ServiceRegister()
        register.register(Clock)
        factory = register.create_factory()

        assert isinstance(factory.get_instance(Clock), Clock)
        assert factory.get_instance(Clock) is not factory.get_instance(Clock)

    def test_singleton_with_dependency(self):
        register = ServiceRegister()
        register.register(Clock, lifetime=Lifetime.SINGLETON)
        register.register(
            Scheduler, lambda f: Scheduler(f.get_instance(Clock)), Lifetime.SINGLETON
        )
        factory = register.create_factory()

        scheduler = factory.get_instance(Scheduler)
        assert scheduler is factory.get_instance(Scheduler)
        assert scheduler.clock is factory.get_instance(Clock)

    def test_instance_registration(self):
        clock = Clock()
        register = ServiceRegister()
        register.register_instance(Clock, clock)
        assert register.is_registered(Clock)
        assert register.create_factory().get_instance(Clock) is clock

    def test_later_registration_replaces_earlier(self):
        clock = Clock()
        register = ServiceRegister()
        register.register_instance(Clock, clock)
        register.register(Clock)

        assert register.create_factory().get_instance(Clock) is not clock

    def test_locked_after_factory_created(self):
        register = ServiceRegister()
        register.create_factory()

        with pytest.raises(RuntimeError):
            register.register(Clock)
        with pytest.raises(RuntimeError):
            register.register_instance(Clock, Clock())


class TestServiceFactory:
    def test_unknown_service(self):
        factory = ServiceRegister().create_factory()

        with pytest.raises(LookupError):
            factory.get_instance(Clock)
        assert factory.try_get_instance(Clock) is None

    def test_dispose_closes_singletons(self):
        register = ServiceRegister()
        register.register(Scheduler, lambda f: Scheduler(Clock()), Lifetime.SINGLETON)
        factory = register.create_factory()
        scheduler = factory.get_instance(Scheduler)

        factory.dispose()
        factory.dispose()

        assert scheduler.closed
        with pytest.raises(RuntimeError):
            factory.get_instance(Scheduler)

    def test_dispose_logs_close_errors(self, caplog):
        broken = Mock()
        broken.close.side_effect = OSError("busy")
        factory = ServiceFactory({Clock: (lambda f: broken, Lifetime.SINGLETON)}, {})
        factory.get_instance(Clock)

        with caplog.at_level(logging.ERROR):
            factory.dispose()
        assert "Error disposing" in caplog.text


class TestRegisterFactory:
    def test_default_register(self):
        register = RegisterFactory.create(GlobalSettings(register_type=None))
        assert type(register) is ServiceRegister

    @pytest.mark.parametrize(
        "path",
        [
            "tests_register_custom:CustomRegister",
            "tests_register_custom.CustomRegister",
        ],
    )
    def test_configured_register_type(self, path, monkeypatch):
        module = types.ModuleType("tests_register_custom")
        module.CustomRegister = CustomRegister
        monkeypatch.setitem(sys.modules, "tests_register_custom", module)

        register = RegisterFactory.create(GlobalSettings(register_type=path))
        assert isinstance(register, CustomRegister)

    @pytest.mark.parametrize(
        "path",
        [
            "cms_backoffice.config:GlobalSettings",
            "cms_backoffice.config:DoesNotExist",
            "no_such_module_for_cms:Register",
            "NoModule",
        ],
    )
    def test_invalid_register_type(self, path):
        with pytest.raises(ValueError):
            RegisterFactory.create(GlobalSettings(register_type=path))


class TestCurrent:
    def test_not_instantiable(self):
        with pytest.raises(TypeError):
            Current()

    def test_initialize_once(self, collaborators):
        Current.initialize(**collaborators)
        assert Current.is_initialized()
        assert Current.get_logger() is collaborators["logger"]

        with pytest.raises(RuntimeError):
            Current.initialize(**collaborators)

    def test_default_logger(self):
        assert Current.get_logger().name == "cms_backoffice"

    def test_reset_disposes_factory(self, collaborators):
        register = ServiceRegister()
        register.register(Scheduler, lambda f: Scheduler(Clock()), Lifetime.SINGLETON)
        Current.initialize(**collaborators)
        Current.factory = register.create_factory()
        scheduler = Current.factory.get_instance(Scheduler)

        Current.reset()

        assert scheduler.closed
        assert Current.factory is None
        assert Current.configs is None
        assert not Current.is_initialized()
