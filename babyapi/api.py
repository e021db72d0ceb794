"""Declarative description of a resource API: routes, hooks, middleware and clients."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

from babyapi.client import (
    Client,
    Decoder,
    default_response_codes,
    make_path_with_root,
    new_sub_client,
)
from babyapi.context import (
    Context,
    ContextKey,
    get_resource_from_context,
    new_context_with_request_body,
)
from babyapi.errors import ErrResponse

Handler = Callable[..., Any]
Middleware = Callable[[Handler], Handler]
BeforeAfterHook = Callable[..., Optional[ErrResponse]]
ResourceHook = Callable[..., Optional[ErrResponse]]

_READ_ONLY_MESSAGE = "API cannot be modified after starting"

# Hooks that let every request through unchanged.
_default_before_after: BeforeAfterHook = lambda *_args: None  # noqa: E731
_no_filter: Callable[[Any], Any] = lambda _request: None  # noqa: E731


class BuilderError(Exception):
    """Raised when an API was configured in ways that cannot be combined."""

    def __init__(self, errors: list[BaseException]) -> None:
        self.errors = list(errors)
        super().__init__(str(self))

    def __str__(self) -> str:
        lines = [f"encountered {len(self.errors)} errors constructing API:\n"]
        lines.extend(f"- {err}\n" for err in self.errors)
        return "".join(lines)


@dataclass(frozen=True)
class Route:
    """A custom route: one handler for one method at one pattern."""

    method: str
    pattern: str
    handler: Handler


class API:
    """A CRUD API for one resource type, optionally nested below other APIs."""

    def __init__(
        self,
        name: str,
        base: str,
        instance: Optional[Callable[[], Any]] = None,
        *,
        resource_type: Optional[type] = None,
        decode: Optional[Decoder] = None,
    ) -> None:
        self._name = name
        self._base = base
        self._instance = instance
        self._resource_type = resource_type
        self._decode = decode

        self._sub_apis: dict[str, API] = {}
        self._middlewares: list[Middleware] = []
        self._id_middlewares: list[Middleware] = []

        self.storage: Any = None
        self._context: Optional[threading.Event] = None
        self._quit = threading.Event()

        self._root_routes: list[Route] = []
        self._custom_routes: list[Route] = []
        self._custom_id_routes: list[Route] = []

        self._response_wrapper: Callable[[Any], Any] = lambda resource: resource
        self._search_response_wrapper: Optional[Callable[[list[Any]], Any]] = None
        self._search_filter: Callable[[Any], Any] = _no_filter

        self._before_delete: BeforeAfterHook = _default_before_after
        self._after_delete: BeforeAfterHook = _default_before_after
        self._on_create_or_update: ResourceHook = _default_before_after
        self._after_create_or_update: ResourceHook = _default_before_after

        self._parent: Optional[API] = None
        self._response_codes = default_response_codes()
        self._root = False
        self._frozen = False
        self._lock = threading.Lock()
        self._errors: list[BaseException] = []
        self._address = ""

    def __repr__(self) -> str:
        return f"API(name={self._name!r}, base={self._base!r})"

    # Read-only views used by whatever builds routes from this description.

    @property
    def name(self) -> str:
        return self._name

    @property
    def base(self) -> str:
        return self._base

    @property
    def is_root(self) -> bool:
        return self._root

    @property
    def parent(self) -> Optional[API]:
        return self._parent

    @property
    def address(self) -> str:
        return self._address

    @property
    def response_codes(self) -> dict[str, int]:
        return self._response_codes

    @property
    def middlewares(self) -> tuple[Middleware, ...]:
        return tuple(self._middlewares)

    @property
    def id_middlewares(self) -> tuple[Middleware, ...]:
        return tuple(self._id_middlewares)

    @property
    def root_routes(self) -> tuple[Route, ...]:
        return tuple(self._root_routes)

    @property
    def custom_routes(self) -> tuple[Route, ...]:
        return tuple(self._custom_routes)

    @property
    def custom_id_routes(self) -> tuple[Route, ...]:
        return tuple(self._custom_id_routes)

    @property
    def errors(self) -> tuple[BaseException, ...]:
        return tuple(self._errors)

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def before_delete(self) -> BeforeAfterHook:
        return self._before_delete

    @property
    def after_delete(self) -> BeforeAfterHook:
        return self._after_delete

    @property
    def on_create_or_update(self) -> ResourceHook:
        return self._on_create_or_update

    @property
    def after_create_or_update(self) -> ResourceHook:
        return self._after_create_or_update

    @property
    def search_filter(self) -> Callable[[Any], Any]:
        return self._search_filter

    @property
    def response_wrapper(self) -> Callable[[Any], Any]:
        return self._response_wrapper

    @property
    def search_response_wrapper(self) -> Optional[Callable[[list[Any]], Any]]:
        return self._search_response_wrapper

    # Configuration.

    def _check_writable(self) -> None:
        with self._lock:
            if self._frozen:
                raise RuntimeError(_READ_ONLY_MESSAGE)

    def set_address(self, address: str) -> API:
        """Set the bind address used when serving."""
        self._check_writable()
        self._address = address
        return self

    def set_custom_response_code(self, verb: str, code: int) -> API:
        """Override the response code for a verb; use METHOD_SEARCH for listing."""
        self._check_writable()
        self._response_codes[verb] = code
        return self

    def set_search_response_wrapper(self, wrapper: Callable[[list[Any]], Any]) -> API:
        """Set a function that builds the search response from the found resources."""
        self._check_writable()
        self._search_response_wrapper = wrapper
        return self

    def set_on_create_or_update(self, hook: ResourceHook) -> API:
        """Set a hook run before a created or updated resource is saved."""
        self._check_writable()
        self._on_create_or_update = hook
        return self

    def set_after_create_or_update(self, hook: ResourceHook) -> API:
        """Set a hook run after a created or updated resource is saved."""
        self._check_writable()
        self._after_create_or_update = hook
        return self

    def set_before_delete(self, hook: Optional[BeforeAfterHook]) -> API:
        """Set a hook run before deleting; None restores the default."""
        self._check_writable()
        self._before_delete = hook if hook is not None else _default_before_after
        return self

    def set_after_delete(self, hook: Optional[BeforeAfterHook]) -> API:
        """Set a hook run after deleting; None restores the default."""
        self._check_writable()
        self._after_delete = hook if hook is not None else _default_before_after
        return self

    def set_search_filter(self, search_filter: Callable[[Any], Any]) -> API:
        """Set a function that builds a filter for search results from the request."""
        self._check_writable()
        self._search_filter = search_filter
        return self

    def set_response_wrapper(self, wrapper: Callable[[Any], Any]) -> API:
        """Set a function that wraps a resource before it is rendered."""
        self._check_writable()
        self._response_wrapper = wrapper
        return self

    def client(self, address: str) -> Client:
        """Return a client for this API at the given server address."""
        client = Client(
            address, make_path_with_root(self._base, self._parent), decode=self._decode
        )
        return client.set_custom_response_code_map(self._response_codes)

    def any_client(self, address: str) -> Client:
        """Return a client for this API that leaves decoded JSON as plain data."""
        client = Client(address, make_path_with_root(self._base, self._parent))
        client.set_custom_response_code_map(self._response_codes)
        client.name = self._name
        return client

    def add_custom_root_route(self, method: str, pattern: str, handler: Handler) -> API:
        """Add a route at the absolute root; not allowed for child APIs."""
        self._check_writable()
        if self._parent is not None:
            self._errors.append(
                ValueError("add_custom_root_route: cannot be applied to child APIs")
            )
            return self
        self._root_routes.append(Route(method, pattern, handler))
        return self

    def add_custom_route(self, method: str, pattern: str, handler: Handler) -> API:
        """Add a route below the base path."""
        self._check_writable()
        self._custom_routes.append(Route(method, pattern, handler))
        return self

    def add_custom_id_route(self, method: str, pattern: str, handler: Handler) -> API:
        """Add a route below the resource ID path; not allowed for root APIs."""
        self._check_writable()
        if self._root:
            self._errors.append(
                ValueError("add_custom_id_route: ID routes cannot be used with a root API")
            )
            return self
        self._custom_id_routes.append(Route(method, pattern, handler))
        return self

    def add_middleware(self, middleware: Middleware) -> API:
        """Add middleware for the paths without a resource ID."""
        self._check_writable()
        self._middlewares.append(middleware)
        return self

    def add_id_middleware(self, middleware: Middleware) -> API:
        """Add middleware for the paths with a resource ID; not allowed for root APIs."""
        self._check_writable()
        if self._root:
            self._errors.append(
                ValueError("add_id_middleware: ID middleware cannot be used with a root API")
            )
            return self
        self._id_middlewares.append(middleware)
        return self

    def _nest(self, child: API) -> API:
        self._check_writable()
        child._parent = self
        self._sub_apis[child.name] = child
        return self

    def child_apis(self) -> dict[str, API]:
        """Return the nested child APIs by name."""
        return {child.name: child for child in self._sub_apis.values()}

    def set_storage(self, storage: Any) -> API:
        """Set the storage used to read and write resources."""
        self._check_writable()
        self.storage = storage
        return self

    def with_context(self, ctx: threading.Event) -> API:
        """Stop the API automatically once the given event is set."""
        self._check_writable()
        self._context = ctx

        def watch() -> None:
            ctx.wait()
            self._quit.set()

        threading.Thread(target=watch, daemon=True).start()
        return self

    def modify(self, modify: Callable[[API], None]) -> API:
        """Apply a custom modification in the fluent style."""
        self._check_writable()
        modify(self)
        return self

    def freeze(self) -> API:
        """Make the API read-only; later modifications raise RuntimeError."""
        with self._lock:
            self._frozen = True
        return self

    def check_errors(self) -> None:
        """Raise BuilderError if any configuration step was rejected."""
        if self._errors:
            raise BuilderError(self._errors)

    def stop(self) -> None:
        """Signal the API to stop."""
        self._quit.set()

    def done(self) -> threading.Event:
        """Return the event that is set once the API stops."""
        return self._quit

    def create_client_map(self, parent: Client) -> dict[str, Client]:
        """Map the name of this API and every descendant to a client for it."""
        client_map: dict[str, Client] = {}
        if not self._root:
            client_map[self._name] = parent

        for child in self._sub_apis.values():
            base = make_path_with_root(child.base, self)
            if self._root and self._parent is None:
                child_client = Client(parent.address, base)
            else:
                child_client = new_sub_client(parent, base)
            child_client.name = child.name
            child_client.set_custom_response_code_map(child.response_codes)
            client_map.update(child.create_client_map(child_client))

        return client_map

    # Request context helpers.

    def _context_key(self) -> str:
        return ContextKey(self._name)

    def _new_context_with_resource(self, ctx: Context, value: Any) -> Context:
        return ctx.with_value(self._context_key(), value)

    def new_context_with_request_body(self, ctx: Context, item: Any) -> Context:
        """Return a context carrying the decoded request body."""
        return new_context_with_request_body(ctx, item)

    def parent_context_key(self) -> str:
        """Return the context key of the direct parent's resource."""
        if self._parent is None:
            raise ValueError(f"API {self._name!r} has no parent")
        return ContextKey(self._parent.name)

    def get_resource_from_context(self, ctx: Context) -> Any:
        """Return this API's resource from the request context."""
        kind = self._resource_type if self._resource_type is not None else object
        return get_resource_from_context(ctx, self._context_key(), kind)


def new_root_api(name: str, base: str) -> API:
    """Create an API that only groups children and custom routes, without resources."""
    api = API(name, base)
    api._root = True
    return api