"""Command line client for the resources of an API."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence, TextIO
from urllib.parse import parse_qsl, urlencode

import httpx

from babyapi.api import API
from babyapi.client import Client, make_request

DEFAULT_CLIENT_ADDRESS = "http://localhost:8080"

_VERB_HELP = {
    "get": "make a GET request to get a resource by ID",
    "list": "make a GET request to list resources",
    "delete": "make a DELETE request to delete a resource by ID",
    "post": "make a POST request to create a new resource",
    "put": "make a PUT request to create or modify a resource by ID",
    "patch": "make a PATCH request to modify a resource by ID",
}
_ID_VERBS = frozenset({"get", "delete", "put", "patch"})
_BODY_VERBS = frozenset({"post", "put", "patch"})

_TRUE_WORDS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_WORDS = frozenset({"0", "f", "F", "FALSE", "false", "False"})


@dataclass
class CLIArgs:
    """Options shared by every client command."""

    address: str = ""
    pretty: bool = True
    headers: list[str] = field(default_factory=list)
    query: str = ""

    def _edit_request(self, request: httpx.Request) -> None:
        for header in self.headers:
            name, sep, value = header.partition(":")
            if not sep:
                raise ValueError(f"invalid header provided: {json.dumps(header)}")
            name, value = name.strip(), value.strip()
            existing = request.headers.get_list(name)
            request.headers[name] = ", ".join([*existing, value])

        if ";" in self.query:
            raise ValueError("error parsing query string: invalid semicolon separator in query")
        pairs = parse_qsl(self.query, keep_blank_values=True)
        encoded = urlencode(sorted(pairs, key=lambda pair: pair[0]))
        request.url = request.url.copy_with(query=encoded.encode() if encoded else None)


class _Parser(argparse.ArgumentParser):
    """Argument parser that raises instead of exiting and accepts --pretty=<bool>."""

    def error(self, message: str) -> Any:
        raise ValueError(message)

    def parse_known_args(self, args: Optional[Sequence[str]] = None, namespace: Any = None) -> Any:
        if args is not None:
            args = [self._normalize(arg) for arg in args]
        return super().parse_known_args(args, namespace)

    def _normalize(self, arg: str) -> str:
        if not arg.startswith("--pretty="):
            return arg
        value = arg.partition("=")[2]
        if value in _TRUE_WORDS:
            return "--pretty"
        if value in _FALSE_WORDS:
            return "--no-pretty"
        self.error(f'invalid argument {value!r} for "--pretty" flag')
        return arg


def _add_client_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--address",
        default=argparse.SUPPRESS,
        help="bind address for server or target host address for client",
    )
    parser.add_argument(
        "--pretty",
        action=argparse.BooleanOptionalAction,
        default=argparse.SUPPRESS,
        help="pretty print JSON if enabled",
    )
    parser.add_argument(
        "--headers", action="append", default=argparse.SUPPRESS, help="add headers to request"
    )
    parser.add_argument(
        "-q", "--query", default=argparse.SUPPRESS, help="add query parameters to request"
    )


def _add_parent_flags(parser: argparse.ArgumentParser, client: Client) -> None:
    for index, parent in enumerate(client.parents):
        parser.add_argument(
            f"--{parent.name.lower()}-id",
            dest=f"parent_{index}",
            default=argparse.SUPPRESS,
            help=f"ID for {json.dumps(parent.name)} parent",
        )


def build_parser(api: API) -> argparse.ArgumentParser:
    """Build the argument parser with a client command for every resource of the API."""
    parser = _Parser(prog=api.name, description="automatic CLI for babyapi server")
    parser.add_argument(
        "--address",
        default=argparse.SUPPRESS,
        help="bind address for server or target host address for client",
    )
    commands = parser.add_subparsers(dest="command", metavar="COMMAND")
    commands.required = True

    client_parser = commands.add_parser(
        "client", help="HTTP client for interacting with API Resources"
    )
    _add_client_flags(client_parser)
    resources = client_parser.add_subparsers(dest="resource", metavar="RESOURCE")
    resources.required = True

    for name, client in api.create_client_map(api.any_client("")).items():
        lower = name.lower()
        resource_parser = resources.add_parser(
            lower,
            aliases=[name] if name != lower else [],
            help=f"client for interacting with {name} resources",
        )
        _add_client_flags(resource_parser)
        _add_parent_flags(resource_parser, client)
        verbs = resource_parser.add_subparsers(dest="verb", metavar="VERB")
        verbs.required = True

        parent_flags = tuple(f"{parent.name.lower()}-id" for parent in client.parents)
        for verb, help_text in _VERB_HELP.items():
            leaf = verbs.add_parser(verb, help=help_text)
            _add_client_flags(leaf)
            _add_parent_flags(leaf, client)
            leaf.add_argument("args", nargs="*")
            if verb in _BODY_VERBS:
                leaf.add_argument(
                    "-d", "--data", default=argparse.SUPPRESS, help="data for request body"
                )
            leaf.set_defaults(resource_name=name, parent_flags=parent_flags)

    return parser


def client_request(client: Client, command: str, args: Any) -> httpx.Request:
    """Build the request for a client command.

    ``args`` holds the parsed command line: the positional arguments in ``args``,
    the request body in ``data`` and the parent IDs as ``parent_0``, ``parent_1``, ...
    """
    if command not in _VERB_HELP:
        raise ValueError(f"unknown command {command!r}")

    positional = list(getattr(args, "args", ()))
    if command in _ID_VERBS and not positional:
        raise ValueError("at least one argument required")

    ids = [getattr(args, f"parent_{index}", "") for index in range(len(client.parents))]
    body = getattr(args, "data", "")
    labels = {
        "get": "GET",
        "list": "GET all",
        "delete": "DELETE",
        "post": "POST",
        "put": "PUT",
        "patch": "PATCH",
    }
    try:
        if command == "get":
            return client.get_request(positional[0], *ids)
        if command == "list":
            return client.search_request("", *ids)
        if command == "delete":
            return client.delete_request(positional[0], *ids)
        if command == "post":
            return client.post_request(body, *ids)
        if command == "put":
            return client.put_request(body, positional[0], *ids)
        return client.patch_request(body, positional[0], *ids)
    except ValueError as exc:
        raise ValueError(f"error creating {labels[command]} request: {exc}") from exc


def _execute(api: API, argv: list[str], out: TextIO) -> None:
    namespace, extras = build_parser(api).parse_known_args(argv)

    positional = list(getattr(namespace, "args", []))
    for extra in extras:
        if extra.startswith("-") and extra != "-":
            raise ValueError(f"unknown flag: {extra}")
        positional.append(extra)
    namespace.args = positional

    verb = namespace.verb
    parent_flags: tuple[str, ...] = namespace.parent_flags
    missing = [
        flag
        for index, flag in enumerate(parent_flags)
        if not hasattr(namespace, f"parent_{index}")
    ]
    if verb in _BODY_VERBS and not hasattr(namespace, "data"):
        missing.append("data")
    if missing:
        names = ", ".join(json.dumps(flag) for flag in sorted(missing))
        raise ValueError(f"required flag(s) {names} not set")

    cli_args = CLIArgs(
        address=getattr(namespace, "address", "") or DEFAULT_CLIENT_ADDRESS,
        pretty=getattr(namespace, "pretty", True),
        headers=[
            header
            for value in getattr(namespace, "headers", [])
            for header in value.split(",")
        ],
        query=getattr(namespace, "query", ""),
    )

    clients = api.create_client_map(api.any_client(cli_args.address))
    client = clients[namespace.resource_name]
    client.address = cli_args.address

    request = client_request(client, verb, namespace)
    try:
        response = make_request(request, client.http_client, 0, cli_args._edit_request)
    except (httpx.HTTPError, ValueError) as exc:
        raise ValueError(f"error executing request: {exc}") from exc
    response.fprint(out, cli_args.pretty)


def run_cli(
    api: API,
    argv: Optional[Sequence[str]] = None,
    out: Optional[TextIO] = None,
) -> int:
    """Run a client command for the API; print errors as 'error: ...' and return an exit code."""
    stream = out if out is not None else sys.stdout
    arguments = list(sys.argv[1:] if argv is None else argv)
    try:
        _execute(api, arguments, stream)
    except ValueError as exc:
        stream.write(f"error: {exc}\n")
        return 1
    return 0