import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Hashable

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from miraveja_lifecycle.application import SystemMap, stop_partial_system
from miraveja_lifecycle.domain import ComponentActionError, LifecycleException, without_components

logger = logging.getLogger(__name__)


def create_lifespan(system: SystemMap) -> Callable[[FastAPI], Any]:
    """Create a FastAPI lifespan handler that runs the system with the application.

    The system is started before the application accepts requests and stored
    at ``app.state.system``. It is stopped when the application shuts down.
    If the start fails, the partially started system is stopped before the
    error propagates.

    Args:
        system: The system to run.

    Returns:
        A lifespan callable for ``FastAPI(lifespan=...)``.

    Example:
        >>> system = system_map(db=Database(url), repo=using(UserRepository(), {"db": "db"}))
        >>> app = FastAPI(lifespan=create_lifespan(system))
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        try:
            app.state.system = system.start()
        except ComponentActionError as e:
            logger.error("System failed to start: %s", without_components(e))
            stop_partial_system(e)
            raise
        except LifecycleException as e:
            logger.error("System failed to start: %s", without_components(e))
            raise

        try:
            yield
        finally:
            try:
                app.state.system = app.state.system.stop()
            except LifecycleException as e:
                logger.error("System failed to stop: %s", without_components(e))
                raise

    return lifespan


def get_system(request: Request) -> SystemMap:
    """Return the running system of the application handling request.

    Raises:
        RuntimeError: If the application was not created with create_lifespan().
    """
    system = getattr(request.app.state, "system", None)
    if system is None:
        raise RuntimeError("Application has no running system. Did you forget to pass create_lifespan() to FastAPI?")
    return system


def create_component_dependency(key: Hashable) -> Callable[[Request], Any]:
    """Create a FastAPI Depends() callable returning the started component at key.

    Args:
        key: Key of the component in the system.

    Returns:
        A callable that FastAPI can use with Depends().

    Example:
        >>> get_repo = create_component_dependency("repo")
        >>>
        >>> @app.get("/users")
        >>> async def list_users(repo: UserRepository = Depends(get_repo)):
        ...     return await repo.get_all()
    """

    def component_dependency(request: Request) -> Any:
        """Look up the component in the running system."""
        system = get_system(request)
        if key not in system:
            raise KeyError(f"System has no component {key!r}")
        return system[key]

    return component_dependency


class SystemStateMiddleware(BaseHTTPMiddleware):
    """Middleware exposing the running system as ``request.state.system``.

    The system is read once per request, so a handler sees a consistent
    snapshot even if the application state is replaced meanwhile.

    Example:
        >>> app = FastAPI(lifespan=create_lifespan(system))
        >>> app.add_middleware(SystemStateMiddleware)
        >>>
        >>> @app.get("/health")
        >>> async def health(request: Request):
        ...     return {"started": request.state.system.is_started}
    """

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        """Attach the running system to the request and execute the endpoint.

        Args:
            request: The incoming HTTP request.
            call_next: The next middleware or endpoint handler.

        Returns:
            The response from the endpoint.
        """
        request.state.system = get_system(request)
        return await call_next(request)
