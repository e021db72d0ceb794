"""HTTP client for the resource APIs."""

from __future__ import annotations

import dataclasses
import functools
import json
import posixpath
from dataclasses import dataclass
from typing import Any, Callable, NamedTuple, Optional, TextIO

import httpx

from babyapi.errors import ErrResponse

METHOD_SEARCH = "Search"
"""Pseudo-verb for listing resources, used when setting custom response codes."""

RequestEditor = Callable[[httpx.Request], None]
"""A function that can modify a request before it is sent; it raises to abort."""

Decoder = Callable[[Any], Any]

_UNSET: Any = object()


def default_response_codes() -> dict[str, int]:
    """Return the status codes a successful request is expected to answer with."""
    return {
        "GET": 200,
        METHOD_SEARCH: 200,
        "POST": 201,
        "PUT": 200,
        "PATCH": 200,
        "DELETE": 204,
    }


@functools.lru_cache(maxsize=None)
def _default_http_client() -> httpx.Client:
    return httpx.Client()


def _to_jsonable(obj: Any) -> Any:
    if obj is None or isinstance(obj, (str, int, float, bool, dict, list)):
        return obj
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    raise TypeError(f"cannot encode {type(obj).__name__} as JSON")


def _encode(obj: Any) -> str:
    return json.dumps(_to_jsonable(obj), ensure_ascii=False, separators=(",", ":")) + "\n"


def _resource_id(resource: Any) -> str:
    if isinstance(resource, dict):
        return str(resource.get("id") or "")
    get_id = getattr(resource, "get_id", None)
    if callable(get_id):
        return str(get_id())
    return str(getattr(resource, "id", "") or "")


@dataclass
class Response:
    """A response from the API with its body text and, for JSON, the decoded data."""

    content_type: str = ""
    body: str = ""
    data: Any = None
    response: Optional[httpx.Response] = None

    def fprint(self, out: TextIO, pretty: bool) -> None:
        """Write the response to out: JSON data re-encoded (indented if pretty), else the raw body."""
        if "application/json" in self.content_type:
            data = _to_jsonable(self.data)
            if pretty:
                text = json.dumps(data, ensure_ascii=False, indent="\t")
            else:
                text = json.dumps(data, ensure_ascii=False, separators=(",", ":"))
            out.write(text + "\n")
        else:
            out.write(self.body)


def _new_response(response: httpx.Response, expected_status_code: int) -> Response:
    result = Response(
        content_type=response.headers.get("Content-Type", ""),
        body=response.text,
        response=response,
    )

    if expected_status_code and response.status_code != expected_status_code:
        if not result.body:
            raise ValueError(f"unexpected status and no body: {response.status_code}")
        raise ErrResponse.from_json(result.body, response.status_code)

    if "application/json" in result.content_type:
        try:
            result.data = json.loads(result.body)
        except json.JSONDecodeError as exc:
            raise ValueError(f"error decoding response body {result.body!r}: {exc}") from exc

    return result


def make_request(
    request: httpx.Request,
    http_client: Optional[httpx.Client],
    expected_status_code: int,
    request_editor: Optional[RequestEditor],
) -> Response:
    """Edit and send a request, check its status and decode a JSON body.

    An expected status of 0 accepts any status. A mismatching status raises the
    ErrResponse decoded from the body, or ValueError if there is no body.
    """
    if request_editor is not None:
        request_editor(request)
    client = http_client if http_client is not None else _default_http_client()
    return _new_response(client.send(request), expected_status_code)


class _ClientParent(NamedTuple):
    name: str
    path: str


class Client:
    """Client for one resource API, optionally nested below parent resources."""

    def __init__(
        self,
        address: str,
        base: str,
        *,
        decode: Optional[Decoder] = None,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.address = address
        self.base = base.lstrip("/")
        self.name = ""
        self.decode = decode
        self.http_client = http_client if http_client is not None else _default_http_client()
        self.request_editor: Optional[RequestEditor] = None
        self.parents: list[_ClientParent] = []
        self.custom_response_codes = default_response_codes()

    def __repr__(self) -> str:
        return f"Client(address={self.address!r}, base={self.base!r})"

    def set_custom_response_code(self, verb: str, code: int) -> Client:
        """Override the expected response code for one verb."""
        self.custom_response_codes[verb] = code
        return self

    def set_custom_response_code_map(self, codes: dict[str, int]) -> Client:
        """Replace the whole map of expected response codes."""
        self.custom_response_codes = codes
        return self

    def set_http_client(self, http_client: httpx.Client) -> Client:
        """Use the given HTTP client for sending requests."""
        self.http_client = http_client
        return self

    def set_request_editor(self, request_editor: Optional[RequestEditor]) -> Client:
        """Set the editor applied to every request before sending."""
        self.request_editor = request_editor
        return self

    def _editor(self, request_editor: Any) -> Optional[RequestEditor]:
        return self.request_editor if request_editor is _UNSET else request_editor

    def _code(self, verb: str) -> int:
        return self.custom_response_codes.get(verb, 0)

    def _decode_one(self, data: Any) -> Any:
        if self.decode is None or data is None:
            return data
        return self.decode(data)

    def _decode_list(self, response: Response) -> Any:
        data = response.data
        if data is None:
            return None
        if not isinstance(data, dict):
            raise ValueError(f"error decoding response body {response.body!r}: expected a JSON object")
        items = data.get("items")
        if items is None:
            items = []
        if not isinstance(items, list):
            raise ValueError(f"error decoding response body {response.body!r}: 'items' must be a list")
        return {**data, "items": [self._decode_one(item) for item in items]}

    def get(self, id: str, *args: str, request_editor: Any = _UNSET) -> Response:
        """Get a resource by ID."""
        request = self.get_request(id, *args)
        return self.make_request(request, self._code("GET"), self._editor(request_editor))

    def get_request(self, id: str, *args: str) -> httpx.Request:
        """Build the request for getting a resource."""
        return self.new_request_with_parent_ids("GET", None, id, *args)

    def search(self, raw_query: str, *args: str, request_editor: Any = _UNSET) -> Response:
        """List resources; the data is a mapping whose 'items' holds the decoded resources."""
        request = self.search_request(raw_query, *args)
        response = make_request(
            request, self.http_client, self._code(METHOD_SEARCH), self._editor(request_editor)
        )
        response.data = self._decode_list(response)
        return response

    def search_request(self, raw_query: str, *args: str) -> httpx.Request:
        """Build the request for listing resources with the given raw query string."""
        request = self.new_request_with_parent_ids("GET", None, "", *args)
        request.url = request.url.copy_with(query=raw_query.encode() if raw_query else None)
        return request

    def search_any(self, raw_query: str, *args: str, request_editor: Any = _UNSET) -> Response:
        """List resources without assuming the shape of the response data."""
        request = self.search_request(raw_query, *args)
        return make_request(
            request, self.http_client, self._code(METHOD_SEARCH), self._editor(request_editor)
        )

    def put(self, resource: Any, *args: str, request_editor: Any = _UNSET) -> Response:
        """Create or replace a resource under its own ID."""
        return self._send(
            "PUT", self.put_request(_encode(resource), _resource_id(resource), *args), request_editor
        )

    def put_request(self, body: Any, id: str, *args: str) -> httpx.Request:
        """Build a JSON PUT request for a resource."""
        return self._json_request("PUT", body, id, *args)

    def put_raw(self, id: str, body: str, *args: str, request_editor: Any = _UNSET) -> Response:
        """PUT the given string as the body."""
        return self._send("PUT", self.put_request(body, id, *args), request_editor)

    def post(self, resource: Any, *args: str, request_editor: Any = _UNSET) -> Response:
        """Create a new resource."""
        return self._send("POST", self.post_request(_encode(resource), *args), request_editor)

    def post_request(self, body: Any, *args: str) -> httpx.Request:
        """Build a JSON POST request."""
        return self._json_request("POST", body, "", *args)

    def post_raw(self, body: str, *args: str, request_editor: Any = _UNSET) -> Response:
        """POST the given string as the body."""
        return self._send("POST", self.post_request(body, *args), request_editor)

    def patch(self, id: str, resource: Any, *args: str, request_editor: Any = _UNSET) -> Response:
        """Modify a resource by ID."""
        return self._send("PATCH", self.patch_request(_encode(resource), id, *args), request_editor)

    def patch_request(self, body: Any, id: str, *args: str) -> httpx.Request:
        """Build a JSON PATCH request for a resource."""
        return self._json_request("PATCH", body, id, *args)

    def patch_raw(self, id: str, body: str, *args: str, request_editor: Any = _UNSET) -> Response:
        """PATCH with the given string as the body."""
        return self._send("PATCH", self.patch_request(body, id, *args), request_editor)

    def delete(self, id: str, *args: str, request_editor: Any = _UNSET) -> Response:
        """Delete a resource by ID."""
        return self._send("DELETE", self.delete_request(id, *args), request_editor)

    def delete_request(self, id: str, *args: str) -> httpx.Request:
        """Build the request for deleting a resource."""
        return self.new_request_with_parent_ids("DELETE", None, id, *args)

    def _json_request(self, method: str, body: Any, id: str, *args: str) -> httpx.Request:
        request = self.new_request_with_parent_ids(method, body, id, *args)
        request.headers["Content-Type"] = "application/json"
        return request

    def _send(self, verb: str, request: httpx.Request, request_editor: Any) -> Response:
        return self.make_request(request, self._code(verb), self._editor(request_editor))

    def new_request_with_parent_ids(
        self, method: str, body: Any, id: str, *args: str
    ) -> httpx.Request:
        """Build a request for the URL made from the ID and the parent IDs."""
        return httpx.Request(method, self.url(id, *args), content=body)

    def url(self, id: str, *args: str) -> str:
        """Return the URL of a resource, or of the collection if id is empty."""
        if len(args) != len(self.parents):
            raise ValueError(f"expected {len(self.parents)} parentIDs")
        path = self.address
        for parent, parent_id in zip(self.parents, args):
            path += f"/{parent.path}/{parent_id}"
        path += f"/{self.base}"
        if id:
            path += f"/{id}"
        return path

    def make_request(
        self, request: httpx.Request, expected_status_code: int, request_editor: Any = _UNSET
    ) -> Response:
        """Send a request and decode a JSON body as this client's resource."""
        response = make_request(
            request, self.http_client, expected_status_code, self._editor(request_editor)
        )
        response.data = self._decode_one(response.data)
        return response

    def make_generic_request(
        self, request: httpx.Request, target: Optional[Decoder]
    ) -> Response:
        """Send a request without checking its status; target converts the decoded JSON body."""
        editor = self.request_editor
        if editor is not None:
            editor(request)
        http_response = self.http_client.send(request)
        result = Response(
            content_type=http_response.headers.get("Content-Type", ""),
            body=http_response.text,
            response=http_response,
        )
        if target is None:
            return result
        try:
            decoded = json.loads(result.body)
        except json.JSONDecodeError as exc:
            raise ValueError(f"error decoding response body {result.body!r}: {exc}") from exc
        result.data = target(decoded)
        return result


def new_sub_client(parent: Client, path: str) -> Client:
    """Create a client for a resource nested below the parent client's resource."""
    client = Client(parent.address, path)
    client.parents = list(parent.parents)
    if parent.base:
        client.parents.append(_ClientParent(name=parent.name, path=parent.base))
    return client


def make_path_with_root(base: str, parent: Any) -> str:
    """Prefix base with the parent's base path when the parent is a root API."""
    if parent is None or not parent.is_root:
        return base
    joined = "/".join(part for part in (parent.base, base) if part)
    if not joined:
        return ""
    cleaned = posixpath.normpath(joined)
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned