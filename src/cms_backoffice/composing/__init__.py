"""Composition: global state and the service register/factory"""

from .current import Current
from .register import Lifetime, RegisterFactory, ServiceFactory, ServiceRegister

__all__ = ["Current", "Lifetime", "RegisterFactory", "ServiceFactory", "ServiceRegister"]
