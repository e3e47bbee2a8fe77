"""Endpoint definitions and their conversion to servable endpoints."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from fluidkit.stack import Middleware, Stack


@dataclass
class Endpoint:
    """A URL and method with the middlewares that serve it."""

    url: str = ""
    method: str = ""
    middlewares: list[Optional[Middleware]] = field(default_factory=list)


@dataclass
class EndpointDefinition:
    """A URL and method with the middleware stack that serves it."""

    url: str = ""
    method: str = ""
    middleware_stack: Stack = field(default_factory=Stack)


Option = Callable[[EndpointDefinition], None]


def to_api_endpoints(definitions: Iterable[EndpointDefinition]) -> list[Endpoint]:
    """Convert endpoint definitions to endpoints."""
    return [
        Endpoint(
            url=definition.url,
            method=definition.method,
            middlewares=[wrapper.middleware for wrapper in definition.middleware_stack],
        )
        for definition in definitions
    ]


def clone_endpoint_definition(
    original: EndpointDefinition, *options: Option
) -> EndpointDefinition:
    """Return a copy of ``original`` with ``options`` applied in order."""
    cloned = dataclasses.replace(original)
    for option in options:
        option(cloned)
    return cloned


def with_url(url: str) -> Option:
    """Return an option that sets the URL."""

    def option(definition: EndpointDefinition) -> None:
        definition.url = url

    return option


def with_method(method: str) -> Option:
    """Return an option that sets the HTTP method."""

    def option(definition: EndpointDefinition) -> None:
        definition.method = method

    return option


def with_middleware_stack(stack: Stack) -> Option:
    """Return an option that sets the middleware stack."""

    def option(definition: EndpointDefinition) -> None:
        definition.middleware_stack = stack

    return option


def with_middleware_stack_func(
    func: Callable[[EndpointDefinition], Stack],
) -> Option:
    """Return an option that sets the stack to what ``func`` builds from the definition."""

    def option(definition: EndpointDefinition) -> None:
        definition.middleware_stack = func(definition)

    return option