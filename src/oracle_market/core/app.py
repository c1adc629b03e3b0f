"""Application: composed from modules via app.register(module). Served as a Starlette ASGI app."""
from __future__ import annotations

from typing import Any

import structlog
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse
from starlette.routing import Route

from oracle_market.core.container import Container
from oracle_market.core.module import Module
from oracle_market.core.openapi import SWAGGER_UI_HTML, RouteSchemas, build_openapi_spec

log = structlog.get_logger(__name__)


class Application:
    """
    Application. Composed from modules via register(module).
    The object itself is an ASGI callable: `uvicorn module:app`.
    """

    def __init__(self, config: Any = None) -> None:
        self._modules: list[Module] = []
        self._container = Container()
        self._routes: list[Route] = []
        self._route_schemas: RouteSchemas = {}
        self._openapi_title = "API"
        self._openapi_version = "0.1.0"
        self._asgi: Starlette | None = None
        if config is not None:
            self._container.register_instance(type(config), config)

    def register(self, module: Module) -> Application:
        """Register a module (DomainModule, EventBusModule, etc.). Returns self for chaining."""
        if self._asgi is not None:
            raise RuntimeError("Cannot register modules after the application has started serving")
        module.register_into(self)
        self._modules.append(module)
        return self

    def add_route(
        self,
        path: str,
        endpoint: Any,
        methods: list[str] | None = None,
        *,
        openapi_body_schema: dict[str, Any] | None = None,
        openapi_parameters: list[dict[str, Any]] | None = None,
        openapi_tags: list[str] | None = None,
    ) -> None:
        """Add an HTTP route; openapi_* fragments end up in /openapi.json."""
        if methods is None:
            methods = ["GET"]
        self._routes.append(Route(path, endpoint, methods=methods))
        for method in methods:
            fragment: dict[str, Any] = {}
            if openapi_body_schema is not None:
                fragment["body"] = openapi_body_schema
            if openapi_parameters is not None:
                fragment["parameters"] = openapi_parameters
            if openapi_tags:
                fragment["tags"] = openapi_tags
            self._route_schemas[(path, method.lower())] = fragment

    def openapi(
        self,
        *,
        title: str = "API",
        version: str = "0.1.0",
        docs_path: str = "/docs",
        openapi_path: str = "/openapi.json",
    ) -> Application:
        """Serve the OpenAPI document and Swagger UI for every route registered so far (and later)."""
        self._openapi_title = title
        self._openapi_version = version

        async def openapi_endpoint(request: Request) -> JSONResponse:
            documented = [(r.path, sorted(r.methods - {"HEAD"})) for r in self._routes if r.path not in (docs_path, openapi_path)]
            return JSONResponse(
                build_openapi_spec(
                    documented,
                    title=self._openapi_title,
                    version=self._openapi_version,
                    route_schemas=self._route_schemas,
                )
            )

        async def docs_endpoint(request: Request) -> HTMLResponse:
            return HTMLResponse(SWAGGER_UI_HTML.replace("{openapi_path}", openapi_path))

        self._routes.append(Route(openapi_path, openapi_endpoint, methods=["GET"]))
        self._routes.append(Route(docs_path, docs_endpoint, methods=["GET"]))
        return self

    @property
    def container(self) -> Container:
        """DI container: registration and resolution of dependencies."""
        return self._container

    @property
    def asgi(self) -> Starlette:
        """Starlette app built lazily from the registered routes."""
        if self._asgi is None:
            self._asgi = Starlette(routes=list(self._routes))
            log.info("application_built", routes=len(self._routes), modules=len(self._modules))
        return self._asgi

    async def __call__(self, scope: Any, receive: Any, send: Any) -> None:
        await self.asgi(scope, receive, send)

    def run(self, host: str = "127.0.0.1", port: int = 8000) -> None:
        """Run HTTP server with uvicorn (blocks)."""
        import uvicorn

        uvicorn.run(self, host=host, port=port)
