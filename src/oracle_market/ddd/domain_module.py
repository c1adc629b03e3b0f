"""
DomainModule: one object per bounded context.
Describes repositories, services, commands, queries and event subscriptions.
"""
from __future__ import annotations

import dataclasses
import json
import re
import types
import typing
from typing import Any, Callable, Type

import structlog
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from oracle_market.core.app import Application
from oracle_market.core.openapi import parameters_from_dataclass, schema_from_dataclass
from oracle_market.ddd.commands import Command, Query
from oracle_market.domain.errors import DomainError
from oracle_market.domain.events import EventBus, InProcessEventDispatcher
from oracle_market.domain.repository import Repository

log = structlog.get_logger(__name__)


def _snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def to_payload(value: Any) -> Any:
    """JSON-ready view of handler results: dataclasses become dicts, bytes become hex."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_payload(getattr(value, f.name)) for f in dataclasses.fields(value) if not f.name.startswith("_")}
    if isinstance(value, bytes):
        return value.hex()
    if isinstance(value, dict):
        return {str(k): to_payload(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_payload(v) for v in value]
    return value


def _coerce_params(payload_type: type, params: dict[str, str]) -> dict[str, Any]:
    """Query strings arrive as text; coerce to the dataclass field types."""
    hints = typing.get_type_hints(payload_type)
    out: dict[str, Any] = {}
    for name, raw in params.items():
        target = hints.get(name, str)
        if typing.get_origin(target) is not None:
            target = next((a for a in typing.get_args(target) if a is not type(None)), str)
        if target is bool:
            out[name] = raw.strip().lower() in ("1", "true", "yes")
        elif target is int:
            out[name] = int(raw)
        else:
            out[name] = raw
    return out


def _matches(value: Any, target: Any) -> bool:
    if target is Any:
        return True
    if target is type(None):
        return value is None
    origin = typing.get_origin(target)
    if origin in (typing.Union, types.UnionType):
        return any(_matches(value, arg) for arg in typing.get_args(target))
    if origin is list:
        (item,) = typing.get_args(target) or (Any,)
        return isinstance(value, list) and all(_matches(v, item) for v in value)
    if target is int:
        return isinstance(value, int) and not isinstance(value, bool)
    if isinstance(target, type):
        return isinstance(value, target)
    return True


def _check_body(payload_type: type, body: dict[str, Any]) -> dict[str, Any]:
    """JSON bodies keep their JSON types; a value of the wrong type is rejected, never coerced."""
    hints = typing.get_type_hints(payload_type)
    for name, value in body.items():
        if name in hints and not _matches(value, hints[name]):
            raise TypeError(f"{name}: expected {getattr(hints[name], '__name__', hints[name])}, got {type(value).__name__}")
    return body


def _error_response(code: str, message: str, status_code: int, category: str = "validation") -> JSONResponse:
    return JSONResponse(
        {"ok": False, "error": {"code": code, "category": category, "message": message}},
        status_code=status_code,
    )


class DomainModule:
    """
    One object = full bounded context.
    .repository() .bind() .service() .command() .query() .on_event()
    Register via app.register(module).
    """

    def __init__(self, name: str, prefix: str | None = None) -> None:
        self.name = name
        self.prefix = prefix or f"/{name}"
        self._repositories: list[tuple[Type[Repository[Any]], Type[Any]]] = []
        self._bindings: list[tuple[Any, Type[Any]]] = []
        self._services: list[Type[Any]] = []
        self._commands: list[tuple[Type[Command], Type[Any] | Callable[..., Any]]] = []
        self._queries: list[tuple[Type[Query], Type[Any] | Callable[..., Any]]] = []
        self._event_handlers: list[tuple[type, Any]] = []

    def repository(self, interface: Type[Repository[Any]], impl: Type[Any]) -> DomainModule:
        self._repositories.append((interface, impl))
        return self

    def bind(self, interface: Any, impl: Type[Any]) -> DomainModule:
        """Register any interface → implementation for DI (domain services, clocks, ledgers)."""
        self._bindings.append((interface, impl))
        return self

    def service(self, cls: Type[Any]) -> DomainModule:
        """Register a concrete service class, resolved with its constructor dependencies."""
        self._services.append(cls)
        return self

    def command(self, cmd_type: Type[Command], handler: Type[Any] | Callable[..., Any]) -> DomainModule:
        self._commands.append((cmd_type, handler))
        return self

    def query(self, query_type: Type[Query], handler: Type[Any] | Callable[..., Any]) -> DomainModule:
        self._queries.append((query_type, handler))
        return self

    def on_event(self, event_type: type, handler: Any) -> DomainModule:
        """Subscribe a callable, or a class resolved from the container and called with the event."""
        self._event_handlers.append((event_type, handler))
        return self

    def register_into(self, app: Application) -> None:
        container = app.container

        for iface, impl in [*self._repositories, *self._bindings]:
            container.register_class(impl)
            container.register(iface, lambda c=container, i=impl: c.resolve(i))

        for cls in self._services:
            container.register_class(cls)

        # EventBus: if already registered (e.g. EventBusModule), use it; else default in-process
        if container.has(EventBus):
            event_bus = container.resolve(EventBus)
        else:
            event_bus = InProcessEventDispatcher()
            container.register_instance(EventBus, event_bus)
        for event_type, handler in self._event_handlers:
            if isinstance(handler, type):
                if not container.has(handler):
                    container.register_class(handler)
                # resolved on first event so later container overrides are honoured
                event_bus.subscribe(event_type, lambda event, h=handler: container.resolve(h)(event))
            else:
                event_bus.subscribe(event_type, handler)

        for cmd_type, handler in self._commands:
            if isinstance(handler, type):
                container.register_class(handler)
            path = f"{self.prefix.rstrip('/')}/commands/{_snake(cmd_type.__name__)}"
            app.add_route(
                path,
                self._make_endpoint(cmd_type, handler, container, is_query=False),
                methods=["POST"],
                openapi_body_schema=schema_from_dataclass(cmd_type),
                openapi_tags=[self.name],
            )

        for query_type, handler in self._queries:
            if isinstance(handler, type):
                container.register_class(handler)
            path = f"{self.prefix.rstrip('/')}/queries/{_snake(query_type.__name__)}"
            app.add_route(
                path,
                self._make_endpoint(query_type, handler, container, is_query=True),
                methods=["GET", "POST"],
                openapi_parameters=parameters_from_dataclass(query_type),
                openapi_body_schema=schema_from_dataclass(query_type),
                openapi_tags=[self.name],
            )

    def _make_endpoint(
        self,
        payload_type: type,
        handler: Type[Any] | Callable[..., Any],
        container: Any,
        *,
        is_query: bool,
    ) -> Callable:
        async def endpoint(request: Request) -> Response:
            try:
                if request.method == "POST":
                    body = await request.json() if await request.body() else {}
                    if not isinstance(body, dict):
                        raise TypeError("request body must be a JSON object")
                    body = _check_body(payload_type, body)
                else:
                    body = _coerce_params(payload_type, dict(request.query_params))
                payload = payload_type(**body)
            except (TypeError, ValueError, json.JSONDecodeError) as e:
                return _error_response("INVALID_INPUT", str(e), 422)

            h = container.resolve(handler) if isinstance(handler, type) else handler
            try:
                result = await self._call_handler(h, payload)
            except DomainError as e:
                log.info("command_rejected", context=self.name, payload=payload_type.__name__, code=e.code, reason=e.message)
                return JSONResponse({"ok": False, **e.to_envelope()}, status_code=e.status_code)
            if is_query:
                return JSONResponse({"ok": True, "result": to_payload(result)})
            return JSONResponse({"ok": True, "result": to_payload(result)} if result is not None else {"ok": True})
        return endpoint

    async def _call_handler(self, handler: Any, payload: Any) -> Any:
        result = handler(payload)
        if hasattr(result, "__await__"):
            return await result
        return result
