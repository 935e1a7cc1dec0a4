"""
Visitor ID Persistence Tests
============================

Individual storage mechanisms and the resolver chain:
- priority fallback: first mechanism holding a value wins
- repair: every available mechanism ends up with the winner
- failing mechanisms are treated as empty, never abort resolution
- window name blob keeps foreign keys
- ETag store: GET/POST handling, 304 returns the ID stored with the tag
"""

import json
import uuid
from unittest.mock import Mock

import pytest
import requests
from requests.cookies import RequestsCookieJar

from visitprint.persistence import (
    StorageMechanism,
    CookieStorage,
    LocalStorage,
    SessionStorage,
    WindowNameStorage,
    WindowHandle,
    ETagStorage,
    VisitorIdManager,
    build_default_mechanisms,
    generate_visitor_id,
    VISITOR_ID_KEY
)
from visitprint.persistence.etag_storage import ETAG_CACHE_KEY

from conftest import make_response


class FailingStorage(StorageMechanism):
    """Backend that raises on every operation."""

    def __init__(self, name="broken", available=True):
        super().__init__(name)
        self.available = available

    def _read(self):
        raise PermissionError("storage access denied")

    def _write(self, visitor_id):
        raise PermissionError("storage access denied")

    def _is_available(self):
        if self.available is None:
            raise RuntimeError("probe crashed")
        return self.available


class UnavailableStorage(SessionStorage):
    """Holds a value but reports itself unavailable."""

    def __init__(self, value):
        super().__init__({VISITOR_ID_KEY: value})
        self.name = 'unavailable'

    def _is_available(self):
        return False


@pytest.fixture
def local_storage(tmp_path):
    return LocalStorage(str(tmp_path / "store" / "local.db"), origin="test")


class TestStorageMechanismBoundary:
    """Public methods never raise."""

    def test_read_failure_is_none(self):
        assert FailingStorage().read() is None

    def test_write_failure_is_false(self):
        assert FailingStorage().write("abc") is False

    def test_availability_failure_is_false(self):
        assert FailingStorage(available=None).is_available() is False

    def test_empty_string_reads_as_none(self):
        storage = SessionStorage({VISITOR_ID_KEY: ""})
        assert storage.read() is None


class TestCookieStorage:
    """Cookie jar backed mechanism."""

    def test_write_then_read(self):
        storage = CookieStorage(RequestsCookieJar())
        assert storage.write("visitor-1") is True
        assert storage.read() == "visitor-1"

    def test_cookie_name_and_lifetime(self):
        jar = RequestsCookieJar()
        CookieStorage(jar).write("visitor-1")
        cookie = next(iter(jar))
        assert cookie.name == "_vid"
        assert cookie.path == "/"
        assert cookie.expires is not None

    def test_clear_removes_cookie(self):
        storage = CookieStorage(RequestsCookieJar())
        storage.write("visitor-1")
        storage.clear()
        assert storage.read() is None

    def test_disabled_cookies_unavailable(self):
        assert CookieStorage(enabled=False).is_available() is False


class TestLocalStorage:
    """SQLite backed mechanism."""

    def test_write_then_read(self, local_storage):
        assert local_storage.is_available() is True
        assert local_storage.write("visitor-1") is True
        assert local_storage.read() == "visitor-1"

    def test_survives_new_instance(self, local_storage):
        local_storage.write("visitor-1")
        reopened = LocalStorage(local_storage.db_path, origin="test")
        assert reopened.read() == "visitor-1"

    def test_origins_are_isolated(self, local_storage):
        local_storage.write("visitor-1")
        other = LocalStorage(local_storage.db_path, origin="other")
        assert other.read() is None

    def test_items(self, local_storage):
        local_storage.set_item("k", "v")
        assert local_storage.get_item("k") == "v"
        local_storage.remove_item("k")
        assert local_storage.get_item("k") is None

    def test_availability_check_leaves_no_key(self, local_storage):
        local_storage.is_available()
        assert local_storage.get_item("__fp_test__") is None


class TestWindowNameStorage:
    """JSON blob in the window name slot."""

    def test_preserves_other_keys(self):
        window = WindowHandle(name=json.dumps({"theme": "dark", "tab": 3}))
        storage = WindowNameStorage(window)

        assert storage.write("visitor-1") is True
        assert json.loads(window.name) == {"theme": "dark", "tab": 3, "_vid": "visitor-1"}
        assert storage.read() == "visitor-1"

    def test_non_json_content_treated_as_empty(self):
        window = WindowHandle(name="some-frame-name")
        storage = WindowNameStorage(window)

        assert storage.read() is None
        storage.write("visitor-1")
        assert json.loads(window.name) == {"_vid": "visitor-1"}

    def test_non_object_json_treated_as_empty(self):
        storage = WindowNameStorage(WindowHandle(name="[1, 2, 3]"))
        assert storage.read() is None

    def test_non_string_value_ignored(self):
        storage = WindowNameStorage(WindowHandle(name='{"_vid": 42}'))
        assert storage.read() is None


class TestETagStorage:
    """Server-side ETag correlation store."""

    def test_url_strips_single_trailing_slash(self, mock_session):
        assert ETagStorage("http://fp.test/", session=mock_session).url == "http://fp.test/api/etag-store"
        assert ETagStorage("http://fp.test//", session=mock_session).url == "http://fp.test//api/etag-store"

    def test_read_success_caches_tag(self, mock_session):
        mock_session.get.return_value = make_response(200, {"visitorId": "visitor-1"}, headers={"ETag": '"v1"'})
        storage = ETagStorage("http://fp.test", session=mock_session)

        assert storage.read() == "visitor-1"
        assert storage.get_cached_tag() == '"v1"'
        _, kwargs = mock_session.get.call_args
        assert kwargs["headers"] == {"If-None-Match": ""}

    def test_read_sends_cached_tag(self, mock_session):
        storage = ETagStorage("http://fp.test", session=mock_session)
        storage.cache_tag('"v1"')
        storage.read()
        _, kwargs = mock_session.get.call_args
        assert kwargs["headers"] == {"If-None-Match": '"v1"'}

    def test_not_modified_is_none(self, mock_session):
        mock_session.get.return_value = make_response(304)
        storage = ETagStorage("http://fp.test", session=mock_session)
        assert storage.read() is None

    def test_not_modified_returns_visitor_id_stored_with_tag(self, mock_session):
        mock_session.post.return_value = make_response(200, {"stored": True, "etag": '"v1"'})
        storage = ETagStorage("http://fp.test", session=mock_session)
        storage.write("visitor-1")

        mock_session.get.return_value = make_response(304)
        assert storage.read() == "visitor-1"
        _, kwargs = mock_session.get.call_args
        assert kwargs["headers"] == {"If-None-Match": '"v1"'}

    def test_network_error_is_none(self, mock_session):
        mock_session.get.side_effect = requests.ConnectionError("refused")
        storage = ETagStorage("http://fp.test", session=mock_session)
        assert storage.read() is None

    def test_write_posts_and_caches_tag(self, mock_session):
        mock_session.post.return_value = make_response(200, {"stored": True, "etag": '"v2"'})
        storage = ETagStorage("http://fp.test", session=mock_session)

        assert storage.write("visitor-1") is True
        assert storage.get_cached_tag() == '"v2"'
        args, kwargs = mock_session.post.call_args
        assert args[0] == "http://fp.test/api/etag-store"
        assert kwargs["json"] == {"visitorId": "visitor-1"}

    def test_write_rejected(self, mock_session):
        mock_session.post.return_value = make_response(500)
        storage = ETagStorage("http://fp.test", session=mock_session)
        assert storage.write("visitor-1") is False

    def test_tag_cache_in_local_storage(self, mock_session, local_storage):
        storage = ETagStorage("http://fp.test", session=mock_session, tag_cache=local_storage)
        storage.cache_tag('"v3"')
        assert local_storage.get_item(ETAG_CACHE_KEY) == '"v3"'


class TestVisitorIdManager:
    """Priority resolution and repair."""

    def test_new_visitor_gets_uuid_everywhere(self):
        mechanisms = [SessionStorage(), WindowNameStorage(), CookieStorage()]
        resolution = VisitorIdManager(mechanisms).resolve()

        assert resolution.is_new is True
        assert uuid.UUID(resolution.visitor_id).version == 4
        assert resolution.sources == []
        assert sorted(resolution.repaired) == ["cookie", "sessionStorage", "windowName"]
        assert all(m.read() == resolution.visitor_id for m in mechanisms)

    def test_first_mechanism_with_value_wins(self):
        first = SessionStorage()
        second = WindowNameStorage(WindowHandle(name='{"_vid": "from-window"}'))
        third = CookieStorage()
        third.write("from-cookie")

        resolution = VisitorIdManager([first, second, third]).resolve()

        assert resolution.visitor_id == "from-window"
        assert resolution.is_new is False
        assert resolution.sources == ["windowName"]
        assert sorted(resolution.repaired) == ["cookie", "sessionStorage"]
        assert third.read() == "from-window"

    def test_unchanged_etag_store_is_not_rewritten(self, mock_session):
        mock_session.post.return_value = make_response(200, {"stored": True, "etag": '"v1"'})
        mechanisms = [SessionStorage({VISITOR_ID_KEY: "visitor-1"}), ETagStorage("http://fp.test", session=mock_session)]
        manager = VisitorIdManager(mechanisms)

        first = manager.resolve()
        second = manager.resolve()

        assert first.repaired == ["etag"]
        assert second.visitor_id == "visitor-1"
        assert second.sources == ["sessionStorage", "etag"]
        assert second.repaired == []
        assert mock_session.post.call_count == 1

    def test_agreeing_mechanisms_not_rewritten(self):
        first = SessionStorage({VISITOR_ID_KEY: "same"})
        second = SessionStorage({VISITOR_ID_KEY: "same"})
        second.name = "second"

        resolution = VisitorIdManager([first, second]).resolve()

        assert resolution.sources == ["sessionStorage", "second"]
        assert resolution.repaired == []

    def test_failing_mechanism_does_not_abort(self):
        good = SessionStorage({VISITOR_ID_KEY: "visitor-1"})
        resolution = VisitorIdManager([FailingStorage(), good]).resolve()

        assert resolution.visitor_id == "visitor-1"
        assert resolution.repaired == []

    def test_unavailable_mechanism_skipped(self):
        resolution = VisitorIdManager([UnavailableStorage("hidden"), SessionStorage()]).resolve()
        assert resolution.visitor_id != "hidden"
        assert resolution.is_new is True
        assert "unavailable" not in resolution.repaired

    def test_resolve_is_stable_after_repair(self):
        mechanisms = [SessionStorage(), WindowNameStorage()]
        manager = VisitorIdManager(mechanisms)
        first = manager.resolve()
        second = manager.resolve()

        assert second.visitor_id == first.visitor_id
        assert second.repaired == []

    def test_adopt_writes_everywhere(self):
        mechanisms = [SessionStorage({VISITOR_ID_KEY: "old"}), WindowNameStorage()]
        written = VisitorIdManager(mechanisms).adopt("matched")

        assert written == ["sessionStorage", "windowName"]
        assert all(m.read() == "matched" for m in mechanisms)

    def test_generate_visitor_id_unique(self):
        assert generate_visitor_id() != generate_visitor_id()


class TestDefaultMechanisms:
    """Chain built from configuration."""

    def test_priority_order_with_server(self, test_config, mock_session):
        mock_session.cookies = RequestsCookieJar()
        mechanisms = build_default_mechanisms(test_config, session=mock_session)

        assert [m.name for m in mechanisms] == ["cookie", "localStorage", "sessionStorage", "windowName", "etag"]
        assert mechanisms[0].jar is mock_session.cookies
        assert mechanisms[4].url == "http://fp.test/api/etag-store"

    def test_no_etag_without_endpoint(self, test_config):
        test_config["server"]["endpoint"] = None
        names = [m.name for m in build_default_mechanisms(test_config)]
        assert "etag" not in names

    def test_etag_disabled(self, test_config):
        test_config["persistence"]["etag_enabled"] = False
        names = [m.name for m in build_default_mechanisms(test_config)]
        assert "etag" not in names

    def test_etag_recovers_cleared_local_state(self, test_config, mock_session):
        mock_session.cookies = RequestsCookieJar()
        mock_session.get.return_value = make_response(200, {"visitorId": "server-side"}, headers={"ETag": '"t"'})
        mock_session.post.return_value = make_response(200, {"stored": True, "etag": '"t"'})

        resolution = VisitorIdManager(build_default_mechanisms(test_config, session=mock_session)).resolve()

        assert resolution.visitor_id == "server-side"
        assert resolution.sources == ["etag"]
        assert set(resolution.repaired) == {"cookie", "localStorage", "sessionStorage", "windowName"}

    def test_repeat_visit_does_not_post_to_etag_store(self, test_config, mock_session):
        mock_session.cookies = RequestsCookieJar()
        mock_session.post.return_value = make_response(200, {"stored": True, "etag": '"t"'})
        manager = VisitorIdManager(build_default_mechanisms(test_config, session=mock_session))

        first = manager.resolve()
        second = manager.resolve()

        assert "etag" in first.repaired
        assert second.visitor_id == first.visitor_id
        assert "etag" not in second.repaired
        assert mock_session.post.call_count == 1
