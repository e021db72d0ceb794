# babyapi

`babyapi` describes small CRUD HTTP APIs around your own resource types and
talks to them. It provides:

- `babyapi.api.API`, a fluent builder that records custom routes, middleware,
  hooks around create/update/delete, search filters, response wrappers and
  expected response codes, and nests child APIs below a parent's ID
  (`/artists/{id}/albums/{id}`);
- `babyapi.client.Client`, which builds URLs from resource and parent IDs,
  sends requests with `httpx` and decodes JSON responses;
- `babyapi.cli.run_cli`, a command line client with a command group for every
  API in the tree;
- `babyapi.errors.ErrResponse`, the error type both raised and sent as JSON;
- `babyapi.context`, immutable request contexts carrying a logger, a request
  body and resources.

## Errors

`ErrResponse` is an exception carrying an HTTP status code and the JSON body
clients see:

```python
from babyapi.errors import err_invalid_request, not_found_response

err = err_invalid_request(ValueError("missing required id field"))
err.http_status_code
# 400
err.to_json()
# '{"status":"Invalid request.","error":"missing required id field"}'

not_found_response().to_dict()
# {'status': 'Resource not found.'}
```

`str(err)` is `"unexpected response with text: <status>"`. Other helpers are
`err_render` (422), `internal_server_error` (500),
`method_not_allowed_response` (405) and `forbidden_response` (403).
`ErrResponse.from_json(text, status)` decodes a received body and raises
`ValueError` if it is not a JSON object of the expected shape.

## Using the client

```python
from babyapi.api import API
from babyapi.client import new_sub_client

artists = API("Artists", "/artists").client("http://localhost:8080")
albums = new_sub_client(artists, "/albums")

albums.url("", "artist-id")
# 'http://localhost:8080/artists/artist-id/albums'

response = albums.search("title=Album1", "artist-id")
print(response.data["items"])
```

Parent IDs are passed positionally after the resource ID, outermost parent
first; passing the wrong number of them raises `ValueError` before any
request is made. The client offers `get`, `search`, `search_any`, `post`,
`put`, `patch` and `delete`, `*_raw` variants that send a string body, and
`*_request` methods that only build the `httpx.Request`. Every sending method
accepts a `request_editor` keyword that replaces the one set with
`set_request_editor`.

Expected status codes default to 200 for `GET`, `Search`, `PUT` and `PATCH`,
201 for `POST` and 204 for `DELETE`; change them with
`set_custom_response_code` (use `babyapi.client.METHOD_SEARCH` for listing)
or `set_custom_response_code_map`. A different status raises the
`ErrResponse` decoded from the body, or `ValueError` if the body is empty. An
expected code of 0, as used by `make_request(request, http_client, 0,
editor)`, accepts any status.

A `Response` keeps `content_type`, the raw `body`, the decoded `data` and the
underlying `httpx.Response`. `Response.fprint(out, pretty)` writes JSON data
re-encoded (tab-indented when `pretty` is true) or the raw body otherwise.

## Building an API description

```python
from babyapi.api import API, new_root_api

songs = API("Songs", "/songs")
songs.set_custom_response_code("PUT", 418).add_middleware(my_middleware)

root = new_root_api("root", "/api")
```

A root API holds child APIs and custom routes but no ID routes:
`add_custom_id_route` and `add_id_middleware` on it, like
`add_custom_root_route` on a child API, record an error instead of a route.
`check_errors()` raises a `BuilderError` listing all of them. After
`freeze()`, every modifying method raises `RuntimeError("API cannot be
modified after starting")`.

`create_client_map(client)` returns a client for this API and every
descendant, keyed by API name. `stop()` sets the event returned by `done()`;
`with_context(event)` stops the API once the given `threading.Event` is set.

## Soft deletes

Resources that implement the `EndDateable` protocol (`end_dated()`,
`set_end_date(when)`) are meant to be end-dated instead of removed.
`end_dated_query_param(True)` returns `{"end_dated": ["true"]}`.

## Command line

Hand your API to `run_cli` from your own entry point:

```python
import sys
from babyapi.cli import run_cli

sys.exit(run_cli(api, sys.argv[1:], sys.stdout))
```

The `client` command has one group per API (by lower-case name or exact
name), each with `get`, `list`, `post`, `put`, `patch` and `delete`. `get`,
`put`, `patch` and `delete` take the resource ID; `post`, `put` and `patch`
require `-d/--data`; child APIs require a `--<parent>-id` option for every
parent. `--address` (default `http://localhost:8080`), `--headers`,
`-q/--query` and `--pretty`/`--no-pretty` (or `--pretty=false`) are accepted.
Errors are written as `error: ...` and `run_cli` returns 1.

## What this package does not do

The `API` class only records configuration: this package contains no HTTP
server, no request routing or handlers, and no storage implementation
(`API.storage` is whatever you set with `set_storage`). The command line has
no `serve` command; it is a client for a server running elsewhere.