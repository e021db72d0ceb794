import threading
from dataclasses import dataclass

import pytest

from babyapi.api import API, BuilderError, Route, new_root_api
from babyapi.client import METHOD_SEARCH
from babyapi.context import Context, ResourceNotFoundError
from babyapi.errors import ErrResponse, err_render


@dataclass
class Album:
    id: str = ""
    title: str = ""


def album_api() -> API:
    return API("Albums", "/albums", Album, resource_type=Album)


def handler(*_args):
    return None


def test_name_and_base():
    api = album_api()
    assert api.name == "Albums"
    assert api.base == "/albums"
    assert api.is_root is False


def test_read_only_after_freeze():
    api = album_api()
    api.freeze()
    with pytest.raises(RuntimeError, match="API cannot be modified after starting"):
        api.set_on_create_or_update(lambda *_: None)


def test_modifications_allowed_before_freeze():
    api = album_api().set_address("localhost:9090").set_custom_response_code("PUT", 418)
    assert api.address == "localhost:9090"
    assert api.response_codes["PUT"] == 418


def test_root_api_id_customizations_cause_error():
    api = new_root_api("root", "/")
    api.add_custom_id_route("", "", handler)
    api.add_id_middleware(lambda h: h)
    with pytest.raises(BuilderError) as info:
        api.check_errors()
    assert str(info.value) == (
        "encountered 2 errors constructing API:\n"
        "- add_custom_id_route: ID routes cannot be used with a root API\n"
        "- add_id_middleware: ID middleware cannot be used with a root API\n"
    )
    assert api.custom_id_routes == ()
    assert api.id_middlewares == ()


def test_check_errors_passes_without_errors():
    api = album_api()
    api.add_custom_route("GET", "/teapot", handler)
    api.check_errors()
    assert api.errors == ()


def test_custom_routes_recorded():
    api = album_api()
    api.add_custom_route("GET", "/test", handler)
    api.add_custom_route("POST", "/test", handler)
    api.add_custom_id_route("GET", "/teapot", handler)
    api.add_custom_root_route("GET", "/root", handler)
    assert api.custom_routes == (Route("GET", "/test", handler), Route("POST", "/test", handler))
    assert api.custom_id_routes == (Route("GET", "/teapot", handler),)
    assert api.root_routes == (Route("GET", "/root", handler),)


def test_custom_root_route_rejected_for_child():
    parent = API("Artists", "/artists")
    child = album_api()
    parent._nest(child)
    child.add_custom_root_route("GET", "/x", handler)
    assert child.root_routes == ()
    with pytest.raises(BuilderError, match="cannot be applied to child APIs"):
        child.check_errors()


def test_middlewares_kept_in_order():
    def first(h):
        return h

    def second(h):
        return h

    api = album_api().add_middleware(first).add_middleware(second).add_id_middleware(second)
    assert api.middlewares == (first, second)
    assert api.id_middlewares == (second,)


def test_delete_hooks_default_when_none():
    def before(*_):
        return err_render(ValueError("test error"))

    api = album_api().set_before_delete(before)
    assert api.before_delete is before
    api.set_before_delete(None)
    api.set_after_delete(None)
    assert api.before_delete() is None
    assert api.after_delete() is None


def test_create_hooks_stored():
    api = album_api()
    api.set_on_create_or_update(lambda *_: err_render(ValueError("test error")))
    result = api.on_create_or_update(None, None)
    assert isinstance(result, ErrResponse)
    assert result.http_status_code == 422


def test_client_urls():
    api = album_api()
    client = api.client("http://localhost:8080")
    assert client.url("") == "http://localhost:8080/albums"
    assert client.url("abc") == "http://localhost:8080/albums/abc"


def test_client_shares_response_codes():
    api = album_api().set_custom_response_code("PUT", 418)
    client = api.client("http://localhost:8080")
    assert client.custom_response_codes["PUT"] == 418


def test_any_client_named():
    client = album_api().any_client("http://localhost:8080")
    assert client.name == "Albums"
    assert client.base == "albums"


def test_client_under_root_with_base():
    root = new_root_api("root", "/api")
    child = API("Songs", "/songs")
    root._nest(child)
    assert child.client("http://h").url("") == "http://h//api/songs"


def test_create_client_map_nested():
    artists = API("Artists", "/artists")
    albums = album_api()
    songs = API("Songs", "/songs")
    artists._nest(albums)
    albums._nest(songs)

    clients = artists.create_client_map(artists.any_client("http://h"))
    assert set(clients) == {"Artists", "Albums", "Songs"}
    assert clients["Songs"].url("s1", "a1", "b1") == "http://h/artists/a1/albums/b1/songs/s1"
    with pytest.raises(ValueError, match="expected 2 parentIDs"):
        clients["Songs"].url("s1")


def test_create_client_map_root():
    root = new_root_api("root", "/")
    root._nest(API("Songs", "/songs").set_custom_response_code(METHOD_SEARCH, 201))
    root._nest(API("MusicVideos", "/music_videos"))
    clients = root.create_client_map(root.any_client("http://h"))
    assert set(clients) == {"Songs", "MusicVideos"}
    assert clients["Songs"].url("x") == "http://h/songs/x"
    assert clients["Songs"].custom_response_codes[METHOD_SEARCH] == 201


def test_child_apis():
    root = new_root_api("root", "/")
    songs = API("Songs", "/songs")
    root._nest(songs)
    assert root.child_apis() == {"Songs": songs}
    assert songs.parent is root


def test_stop_sets_done():
    api = album_api()
    assert not api.done().is_set()
    api.stop()
    assert api.done().wait(2)


def test_with_context_shutdown():
    cancel = threading.Event()
    api = album_api().with_context(cancel)
    threading.Timer(0.1, cancel.set).start()
    assert api.done().wait(2)


def test_modify_applies_function():
    api = album_api().modify(lambda a: a.set_address(":1234"))
    assert api.address == ":1234"


def test_set_storage():
    store = {}
    api = album_api().set_storage(store)
    assert api.storage is store


def test_resource_from_context():
    api = album_api()
    album = Album("1", "A")
    ctx = api._new_context_with_resource(Context(), album)
    assert api.get_resource_from_context(ctx) is album
    with pytest.raises(ResourceNotFoundError):
        api.get_resource_from_context(Context())
    with pytest.raises(TypeError, match="unexpected type str"):
        api.get_resource_from_context(Context().with_value("Albums", "oops"))


def test_parent_context_key():
    parent = API("Artists", "/artists")
    child = album_api()
    parent._nest(child)
    assert child.parent_context_key() == "Artists"
    with pytest.raises(ValueError):
        parent.parent_context_key()


def test_request_body_context():
    from babyapi.context import get_request_body_from_context

    api = album_api()
    album = Album("2", "B")
    ctx = api.new_context_with_request_body(Context(), album)
    assert get_request_body_from_context(ctx, Album) is album