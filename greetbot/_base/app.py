"""
Base server factory.

Each process builds its ASGI application exactly once. A factory keeps that
instance on the class so route registration, the lifecycle manager and tests
all see the same object.
"""

from abc import ABCMeta, abstractmethod
from typing import ClassVar, Generic, Optional, TypeVar

T = TypeVar("T")


class BaseServerFactory(Generic[T], metaclass=ABCMeta):
    """Holder for the one server instance of a process.

    Subclasses only describe how to build the instance; storing, handing out
    and resetting it is shared.

    Examples
    --------
    .. code-block:: python

        from greetbot.webhook.app import web_factory

        app = web_factory.create(settings=settings)
        assert web_factory.get() is app

        # between tests
        web_factory.reset()
    """

    _instance: ClassVar[Optional[object]] = None

    @staticmethod
    @abstractmethod
    def build(**kwargs) -> T:
        """Construct a new, fully configured server instance."""

    @classmethod
    def create(cls, **kwargs) -> T:
        """Build the instance and remember it.

        Raises
        ------
        AssertionError
            If an instance already exists
        """
        assert cls._instance is None, "It is not allowed to create more than one instance of web server."
        cls._instance = cls.build(**kwargs)
        return cls._instance

    @classmethod
    def get(cls) -> T:
        assert cls._instance is not None, "It must be created web server first."
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Forget the instance (for testing purposes)."""
        cls._instance = None
