"""The application object, its feature modules and the module registry."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from flask import Blueprint, Flask

from libapp.config import Config
from libapp.middleware import error_handler, logger, recovery, request_id


@dataclass
class Container:
    """Shared resources handed to every module: the database and the settings."""

    db: Any
    config: Config | None


class Module(ABC):
    """A feature that adds its routes under the API blueprint."""

    @abstractmethod
    def register_routes(self, blueprint: Blueprint) -> None:
        """Add this module's routes to ``blueprint``."""


ModuleFactory = Callable[[Container], Module]

_factories: list[ModuleFactory] = []


def register_module(factory: ModuleFactory) -> ModuleFactory:
    """Add a factory to the modules built by ``load_modules``."""
    _factories.append(factory)
    return factory


def load_modules(container: Container) -> list[Module]:
    """Build every registered module, in registration order."""
    return [factory(container) for factory in _factories]


def new_server(modules: list[Module]) -> Flask:
    """Create the application with its global hooks and every module's routes under /api."""
    app = Flask("libapp")

    recovery(app)
    logger(app)
    request_id(app)
    error_handler(app)

    api = Blueprint("api", __name__, url_prefix="/api")
    for module in modules:
        module.register_routes(api)
    app.register_blueprint(api)

    return app