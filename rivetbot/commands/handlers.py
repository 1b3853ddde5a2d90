"""Handler registry.

Handlers are coroutine functions ``(ctx, request) -> Response``. The variant a
handler serves is read from the annotation of its request parameter, so one
``attach`` call fits every surface::

    async def ping(ctx: Context, req: ClassicRequest | SlashRequest) -> Response:
        ...

Here ``ping`` is registered for both the classic and the slash variants.
"""

from __future__ import annotations

import inspect
import re
import types
import typing
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from .requests import ClassicRequest, MessageRequest, SlashRequest, UserRequest

if TYPE_CHECKING:
    from ..context import Context
    from .errors import Response
    from .requests import Request

__all__ = [
    "Handler",
    "HandlerFn",
    "HandlerSet",
    "Variant",
    "infer_variants",
]

HandlerFn = Callable[["Context", Any], Awaitable["Response"]]


class Variant(StrEnum):
    """Command surfaces a handler can serve."""

    CLASSIC = "classic"
    SLASH = "slash"
    MESSAGE = "message"
    USER = "user"


REQUEST_VARIANTS: dict[type, Variant] = {
    ClassicRequest: Variant.CLASSIC,
    SlashRequest: Variant.SLASH,
    MessageRequest: Variant.MESSAGE,
    UserRequest: Variant.USER,
}

_NAMED_VARIANTS = {cls.__name__: variant for cls, variant in REQUEST_VARIANTS.items()}


def _variants_from_string(annotation: str) -> tuple[Variant, ...]:
    """Resolve an annotation which could not be evaluated, by class names."""
    names = re.findall(r"\w+", annotation)
    return tuple(dict.fromkeys(_NAMED_VARIANTS[name] for name in names if name in _NAMED_VARIANTS))


def infer_variants(fn: Callable[..., Any]) -> tuple[Variant, ...]:
    """Return the variants served by `fn`, from its request parameter annotation.

    Args:
        fn: The handler function

    Raises:
        TypeError: if the function does not take a request or its type is unknown
    """
    params = list(inspect.signature(fn).parameters.values())
    if len(params) < 2:  # noqa: PLR2004
        msg = f"handler {fn.__qualname__} must accept (ctx, request)"
        raise TypeError(msg)
    param = params[1]
    try:
        annotation = typing.get_type_hints(fn).get(param.name, param.annotation)
    except NameError:
        annotation = param.annotation

    if isinstance(annotation, str):
        found = _variants_from_string(annotation)
    elif isinstance(annotation, types.UnionType) or typing.get_origin(annotation) is typing.Union:
        found = tuple(REQUEST_VARIANTS[arg] for arg in typing.get_args(annotation) if arg in REQUEST_VARIANTS)
    else:
        found = (REQUEST_VARIANTS[annotation],) if annotation in REQUEST_VARIANTS else ()

    if not found:
        msg = f"cannot tell which request handler {fn.__qualname__} accepts, annotate it or pass variant="
        raise TypeError(msg)
    return found


@dataclass(frozen=True, eq=False)
class Handler:
    """A handler function bound to one variant."""

    fn: HandlerFn
    variant: Variant

    @property
    def name(self) -> str:
        """Qualified name of the wrapped function."""
        return getattr(self.fn, "__qualname__", repr(self.fn))

    async def __call__(self, ctx: Context, request: Request) -> Response:
        return await self.fn(ctx, request)


@dataclass(frozen=True)
class HandlerSet:
    """Handlers of a node, grouped by variant, in attachment order."""

    by_variant: dict[Variant, tuple[Handler, ...]] = field(default_factory=dict)

    @classmethod
    def of(cls, handlers: Iterable[Handler]) -> HandlerSet:
        """Group `handlers` by variant."""
        grouped: dict[Variant, list[Handler]] = {}
        for handler in handlers:
            grouped.setdefault(handler.variant, []).append(handler)
        return cls({variant: tuple(items) for variant, items in grouped.items()})

    def get(self, variant: Variant) -> tuple[Handler, ...]:
        """Return the handlers attached for `variant`."""
        return self.by_variant.get(variant, ())

    def has(self, variant: Variant) -> bool:
        """Tell if at least one handler serves `variant`."""
        return bool(self.by_variant.get(variant))

    @property
    def variants(self) -> frozenset[Variant]:
        """Variants having at least one handler."""
        return frozenset(v for v, items in self.by_variant.items() if items)

    def __len__(self) -> int:
        return sum(len(items) for items in self.by_variant.values())
