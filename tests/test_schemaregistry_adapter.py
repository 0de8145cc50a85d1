import json as jsonlib

import pytest
import requests

from srgitops.core.adapters.schemaregistry import SchemaRegistryAdapter
from srgitops.core.errors import RegistryError
from srgitops.core.state import (
    Compatibility,
    Schema,
    SchemaReference,
    SchemaType,
    Subject,
)

URL = "http://registry:8081"


class _Response:
    def __init__(self, status_code: int = 200, body=None):
        self.status_code = status_code
        self._body = body
        self.content = b"" if body is None else jsonlib.dumps(body).encode()
        self.text = self.content.decode()

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self):
        if self._body is None:
            raise ValueError("no body")
        return self._body


class _Session:
    """Records requests and answers from a (method, path) -> response table."""

    def __init__(self, routes: dict[tuple[str, str], _Response]):
        self.routes = routes
        self.requests: list[dict] = []

    def request(self, method, url, *, params=None, json=None, timeout=None):
        path = url[len(URL):]
        self.requests.append(
            {"method": method, "path": path, "params": params, "json": json, "timeout": timeout}
        )
        return self.routes.get((method, path), _Response(404, {"error_code": 40401}))


def _adapter(routes, **kwargs) -> tuple[SchemaRegistryAdapter, _Session]:
    session = _Session(routes)
    return SchemaRegistryAdapter(session, URL + "/", **kwargs), session


def test_list_subject_names():
    adapter, _ = _adapter({("GET", "/subjects"): _Response(body=["a", "b"])})

    assert adapter.list_subject_names() == ["a", "b"]


def test_test_compatibility_treats_unknown_subject_as_compatible(hello_schema):
    adapter, session = _adapter({})

    assert adapter.test_compatibility(Subject("new-value", hello_schema)) == []
    assert session.requests[0]["path"] == "/compatibility/subjects/new-value/versions/latest"
    assert session.requests[0]["params"] == {"verbose": "true"}


def test_test_compatibility_returns_registry_messages(hello_schema):
    path = "/compatibility/subjects/a/versions/latest"
    adapter, _ = _adapter(
        {("POST", path): _Response(body={"is_compatible": False, "messages": ["field removed"]})}
    )

    assert adapter.test_compatibility(Subject("a", hello_schema)) == ["field removed"]


def test_test_compatibility_without_messages_still_reports_failure(hello_schema):
    path = "/compatibility/subjects/a/versions/latest"
    adapter, _ = _adapter({("POST", path): _Response(body={"is_compatible": False})})

    assert len(adapter.test_compatibility(Subject("a", hello_schema))) == 1


def test_test_compatibility_passes(hello_schema):
    path = "/compatibility/subjects/a/versions/latest"
    adapter, _ = _adapter({("POST", path): _Response(body={"is_compatible": True})})

    assert adapter.test_compatibility(Subject("a", hello_schema)) == []


def test_global_settings():
    adapter, _ = _adapter(
        {("GET", "/config"): _Response(body={"compatibilityLevel": "FULL", "normalize": True})}
    )

    assert adapter.global_compatibility() is Compatibility.FULL
    assert adapter.normalize_setting() is True


def test_normalize_defaults_to_false_when_not_reported():
    adapter, _ = _adapter({("GET", "/config"): _Response(body={"compatibilityLevel": "NONE"})})

    assert adapter.normalize_setting() is False


def test_subject_compatibility_defaults_to_global():
    adapter, session = _adapter(
        {("GET", "/config/a"): _Response(body={"compatibilityLevel": "FORWARD"})}
    )

    assert adapter.subject_compatibility("a") is Compatibility.FORWARD
    assert session.requests[0]["params"] == {"defaultToGlobal": "true"}


def test_subject_compatibility_override_is_none_when_not_configured():
    adapter, _ = _adapter({("GET", "/config/a"): _Response(404, {"error_code": 40408})})

    assert adapter.subject_compatibility_override("a") is None


def test_latest_schema_parses_type_and_references():
    body = {
        "subject": "a",
        "version": 2,
        "id": 7,
        "schemaType": "PROTOBUF",
        "schema": "message A { string x = 1; }",
        "references": [{"name": "b.proto", "subject": "b", "version": "1"}],
    }
    adapter, _ = _adapter({("GET", "/subjects/a/versions/latest"): _Response(body=body)})

    schema = adapter.latest_schema("a")

    assert schema.schema_type is SchemaType.PROTOBUF
    assert schema.references == (SchemaReference(name="b.proto", subject="b", version=1),)


def test_latest_schema_without_type_is_avro():
    body = {"subject": "a", "version": 1, "id": 1, "schema": '"string"'}
    adapter, _ = _adapter({("GET", "/subjects/a/versions/latest"): _Response(body=body)})

    assert adapter.latest_schema("a") == Schema('"string"')


def test_existing_version_returns_version(hello_schema):
    adapter, session = _adapter(
        {("POST", "/subjects/a"): _Response(body={"subject": "a", "id": 3, "version": 5})},
        normalize=True,
    )

    assert adapter.existing_version(Subject("a", hello_schema)) == 5
    assert session.requests[0]["params"] == {"normalize": "true"}
    assert "schemaType" not in session.requests[0]["json"]


def test_existing_version_is_none_when_schema_not_registered(hello_schema):
    adapter, _ = _adapter({("POST", "/subjects/a"): _Response(404, {"error_code": 40403})})

    assert adapter.existing_version(Subject("a", hello_schema)) is None


def test_subject_names_are_url_quoted(hello_schema):
    adapter, session = _adapter({})

    adapter.existing_version(Subject("team/orders value", hello_schema))

    assert session.requests[0]["path"] == "/subjects/team%2Forders%20value"


def test_errors_carry_status_and_registry_code():
    adapter, _ = _adapter(
        {("GET", "/subjects"): _Response(401, {"error_code": 40101, "message": "Unauthorized"})}
    )

    with pytest.raises(RegistryError, match="Unauthorized") as excinfo:
        adapter.list_subject_names()

    assert excinfo.value.status_code == 401
    assert excinfo.value.error_code == 40101


def test_connection_errors_are_wrapped():
    class _Broken:
        def request(self, *args, **kwargs):
            raise requests.ConnectionError("refused")

    adapter = SchemaRegistryAdapter(_Broken(), URL)

    with pytest.raises(RegistryError, match="refused"):
        adapter.list_subject_names()


def test_register_sends_type_and_references_for_non_avro():
    ref = SchemaReference(name="b.proto", subject="b", version=1)
    subject = Subject(
        "a",
        Schema("message A { string x = 1; }", schema_type=SchemaType.PROTOBUF, references=(ref,)),
    )
    adapter, session = _adapter({("POST", "/subjects/a/versions"): _Response(body={"id": 42})})

    assert adapter.register(subject) == 42
    assert session.requests[0]["json"] == {
        "schema": "message A { string x = 1; }",
        "schemaType": "PROTOBUF",
        "references": [{"name": "b.proto", "subject": "b", "version": 1}],
    }
    assert session.requests[0]["params"] == {"normalize": "false"}


def test_config_writes():
    adapter, session = _adapter(
        {
            ("PUT", "/config"): _Response(body={}),
            ("PUT", "/config/a"): _Response(body={}),
            ("DELETE", "/subjects/a"): _Response(body=[1, 2]),
        },
        timeout=5.0,
    )

    adapter.set_global_compatibility(Compatibility.FULL)
    adapter.set_normalize(True)
    adapter.set_subject_compatibility("a", Compatibility.NONE)
    adapter.delete_subject("a")

    assert [(r["method"], r["path"], r["json"]) for r in session.requests] == [
        ("PUT", "/config", {"compatibility": "FULL"}),
        ("PUT", "/config", {"normalize": True}),
        ("PUT", "/config/a", {"compatibility": "NONE"}),
        ("DELETE", "/subjects/a", None),
    ]
    assert all(r["timeout"] == 5.0 for r in session.requests)


def test_get_state_snapshots_registry():
    adapter, _ = _adapter(
        {
            ("GET", "/subjects"): _Response(body=["a"]),
            ("GET", "/subjects/a/versions/latest"): _Response(
                body={"subject": "a", "version": 1, "id": 1, "schema": '"string"'}
            ),
            ("GET", "/config/a"): _Response(body={"compatibilityLevel": "FORWARD"}),
            ("GET", "/config"): _Response(body={"compatibilityLevel": "BACKWARD"}),
        }
    )

    state = adapter.get_state()

    assert state.compatibility is Compatibility.BACKWARD
    assert state.normalize is None
    assert state.subjects == (Subject("a", Schema('"string"'), Compatibility.FORWARD),)


def test_unparseable_registry_schema_is_a_registry_error():
    body = {"subject": "a", "version": 1, "id": 1, "schema": "{not json"}
    adapter, _ = _adapter({("GET", "/subjects/a/versions/latest"): _Response(body=body)})

    with pytest.raises(RegistryError, match="unusable schema for 'a'"):
        adapter.latest_schema("a")
