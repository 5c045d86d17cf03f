# SPDX-License-Identifier: BSD-3-Clause
# Part of the SiloDEM project
"""
String-keyed registry for the pluggable pieces of a silo simulation.
"""
from __future__ import annotations

from abc import ABC
from typing import Any, Callable, ClassVar, Dict, Type, TypeVar, cast
from inspect import signature

RootT = TypeVar("RootT", bound="Factory")
SubT = TypeVar("SubT", bound="Factory")


class Factory(ABC):
    """
    Base class for components that are selected by name (integrators, colliders, writers).

    Notes
    -----
    Every direct subclass gets its own private registry. Keys are strings and not case sensitive.

    Example
    -------
    >>> class Collider(Factory, ABC):
    >>>     ...
    >>>
    >>> @Collider.register("naive")
    >>> class NaiveCollider(Collider):
    >>>     ...
    >>>
    >>> collider = Collider.create("naive")
    """

    __slots__ = ()
    _registry: ClassVar[Dict[str, Type["Factory"]]] = {}

    def __init_subclass__(cls, **kw: Any) -> None:
        super().__init_subclass__(**kw)
        cls._registry = {}

        if "create" in cls.__dict__:
            raise TypeError(
                f"{cls.__name__} is not allowed to override the `create` method. "
                "Use `Create` instead for custom instantiation logic."
            )

    @classmethod
    def register(
        cls: Type[RootT], key: str | None = None
    ) -> Callable[[Type[SubT]], Type[SubT]]:
        """
        Return a class decorator that stores the decorated class under `key`.

        Parameters
        ----------
        key : str or None, optional
            Registry key. Defaults to the lowercase class name.

        Raises
        ------
        ValueError
            If the key is already taken.
        """

        def decorator(sub_cls: Type[SubT]) -> Type[SubT]:
            k = (key or sub_cls.__name__).lower()
            if k in cls._registry:
                raise ValueError(
                    f"{cls.__name__}: key '{k}' already registered for {cls._registry[k].__name__}"
                )
            cls._registry[k] = sub_cls
            setattr(sub_cls, "__registry_name__", k)

            if not hasattr(sub_cls, "type_name"):

                @property
                def type_name(self) -> str:
                    return getattr(type(self), "__registry_name__")

                sub_cls.type_name = type_name  # type: ignore[attr-defined]

            return sub_cls

        return decorator

    @classmethod
    def available(cls) -> list[str]:
        """Registered keys, in registration order."""
        return list(cls._registry)

    @classmethod
    def create(cls: Type[RootT], key: str, /, **kw: Any) -> RootT:
        """
        Instantiate the subclass registered under `key`.

        If the subclass defines a `Create` method it is called instead of the
        constructor, which lets it validate or derive arguments first.

        Raises
        ------
        KeyError
            If `key` is not registered.
        TypeError
            If `kw` does not match the constructor signature.
        """
        try:
            sub_cls = cls._registry[key.lower()]
        except KeyError as err:
            raise KeyError(
                f"Unknown {cls.__name__} '{key}'. Available: {list(cls._registry)}"
            ) from err

        create_or_ctor = getattr(sub_cls, "Create", None) or sub_cls
        factory_callable = cast(Callable[..., RootT], create_or_ctor)

        sig = signature(create_or_ctor)
        try:
            sig.bind_partial(**kw)
        except TypeError as err:
            raise TypeError(
                f"Invalid keyword(s) for {sub_cls.__name__}: {err}. "
                f"Expected signature: {sub_cls.__name__}.{create_or_ctor.__name__}{sig}"
            ) from None

        return factory_callable(**kw)
