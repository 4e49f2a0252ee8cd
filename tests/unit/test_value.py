"""Value handle tests: descent, presence, populate, copies, and default overlays."""

from __future__ import annotations

import dataclasses
from typing import Any

import pytest
from pydantic import BaseModel

from lib_layered_yaml import (
    ROOT,
    DecodeError,
    InconsistentValueError,
    SerializationError,
    Source,
    new_value,
    new_yaml,
)
from lib_layered_yaml.adapters.yaml_codec import decode, encode

NO_ENV: dict[str, str] = {}


class Pool(BaseModel):
    size: int = 4


class Database(BaseModel):
    host: str = "localhost"
    port: int = 5432
    pool: Pool = Pool()


def build(*sources: str, strict: bool = True):
    return new_yaml(*sources, strict=strict, lookup=NO_ENV.get)


def test_root_value_is_the_whole_document() -> None:
    provider = build("a:\n  b: 1\n")
    assert provider.get(ROOT).value() == {"a": {"b": 1}}
    assert provider.get(ROOT).get(ROOT) == provider.get(ROOT)


def test_chained_get_equals_dotted_get() -> None:
    provider = build("a:\n  b:\n    c: 1\n")
    assert provider.get("a.b").get("c") == provider.get("a.b.c")
    assert provider.get("a").get("b.c").value() == 1


def test_values_from_different_providers_differ() -> None:
    assert build("a: 1\n").get("a") != build("a: 1\n").get("a")


def test_has_value_true_for_explicit_null_false_for_absent() -> None:
    provider = build("a:\n  b: null\n")
    assert provider.get("a.b").has_value() is True
    assert provider.get("a.b").value() is None
    assert provider.get("a.c").has_value() is False


def test_source_and_str() -> None:
    provider = new_yaml("a: [1, 2]\n", name="svc", lookup=NO_ENV.get)
    assert provider.get("a").source() == "svc"
    assert str(provider.get("a")) == "[1, 2]"


def test_value_returns_a_private_copy() -> None:
    provider = build("a:\n  list: [1, 2]\n")
    copy = provider.get("a").value()
    copy["list"].append(3)
    copy["new"] = True
    assert provider.get("a").value() == {"list": [1, 2]}


def test_populate_model_class() -> None:
    provider = build("db:\n  port: 6543\n  pool:\n    size: 8\n")
    assert provider.get("db").populate(Database) == Database(port=6543, pool=Pool(size=8))


def test_populate_absent_key_is_a_no_op() -> None:
    provider = build("db:\n  port: 6543\n")
    target = Database(host="preset")
    assert provider.get("cache").populate(target) is target
    assert provider.get("cache").populate(Database) is None


def test_populate_overlays_preset_instance() -> None:
    provider = build("db:\n  pool:\n    size: 8\n")
    result = provider.get("db").populate(Database(host="preset", pool=Pool(size=1)))
    assert result == Database(host="preset", pool=Pool(size=8))


def test_populate_scalars_and_collections() -> None:
    provider = build("port: 8080\nhosts: [a, b]\nlimits: {cpu: 2}\n")
    assert provider.get("port").populate(int) == 8080
    assert provider.get("hosts").populate(list[str]) == ["a", "b"]
    assert provider.get("limits").populate({"memory": 1}) == {"memory": 1, "cpu": 2}


@pytest.mark.parametrize("text", ["a: 5\n", "a: [1, 2]\n"])
def test_populate_dict_instance_rejects_non_mappings(text: str) -> None:
    with pytest.raises(DecodeError, match="into dict: got (scalar|sequence)"):
        build(text).get("a").populate({"x": 1})


def test_populate_dict_instance_with_explicit_null() -> None:
    assert build("a: null\n").get("a").populate({"x": 1}) is None


def test_populate_type_mismatch_is_a_decode_error() -> None:
    provider = build("db:\n  port: not-a-number\n")
    with pytest.raises(DecodeError, match="db"):
        provider.get("db").populate(Database)


def test_strict_provider_rejects_unknown_fields() -> None:
    with pytest.raises(DecodeError, match="prot"):
        build("db:\n  prot: 1\n").get("db").populate(Database)


def test_permissive_provider_ignores_unknown_fields() -> None:
    assert build("db:\n  prot: 1\n", strict=False).get("db").populate(Database) == Database()


def test_populate_round_trip_is_lossless() -> None:
    text = "a:\n  1: one\n  'true': [1, 2.5, null, yes]\n  nested:\n    deep: {x: ~}\n"
    provider = build(text)
    node = provider.get(ROOT).populate(Any)
    assert decode(encode(node), strict=True) == decode(text.encode("utf-8"), strict=True)


def test_with_default_fills_gaps_under_path() -> None:
    provider = build("a:\n  b:\n    x: 1\n")
    value = provider.get("a.b").with_default({"z": 9, "x": 100})
    assert value.path == ("a", "b")
    assert value.value() == {"z": 9, "x": 1}
    assert value.provider.get(ROOT).value() == {"a": {"b": {"z": 9, "x": 1}}}


def test_with_default_never_resurrects_explicit_null() -> None:
    provider = build("a:\n  b: null\n")
    value = provider.get("a.b").with_default({"z": 9})
    assert value.has_value() is True
    assert value.value() is None


def test_with_default_top_level_null_source_beats_default() -> None:
    provider = build("a:\n  b: 1\n", "~\n")
    assert provider.get(ROOT).with_default({"a": {"c": 2}}).value() is None


def test_with_default_on_empty_provider() -> None:
    provider = build("")
    value = provider.get("a").with_default(5)
    assert value.value() == 5
    assert provider.get("a").has_value() is False


def test_with_default_leaves_original_provider_untouched() -> None:
    provider = build("a:\n  x: 1\n")
    provider.get("a").with_default({"y": 2})
    assert provider.get("a").value() == {"x": 1}


def test_with_default_keeps_name_strictness_and_lookup() -> None:
    provider = new_yaml("a:\n  x: ${X}\n", name="svc", strict=False, lookup={"X": "ok"}.get)
    value = provider.get("a").with_default({"y": "${X}"})
    assert value.source() == "svc"
    assert value.provider.strict is False
    assert value.value() == {"y": "${X}", "x": "ok"}


def test_with_default_does_not_re_expand_raw_sources() -> None:
    provider = new_yaml(Source.from_reader("cmd: ${X}\n", raw=True), lookup={"X": "ok"}.get)
    assert provider.get("cmd").with_default("unused").value() == "${X}"


def test_with_default_accepts_models() -> None:
    provider = build("db:\n  port: 1\n")
    assert provider.get("db").with_default(Database()).value() == {"host": "localhost", "port": 1, "pool": {"size": 4}}


def test_with_default_accepts_dataclasses() -> None:
    @dataclasses.dataclass
    class Retry:
        attempts: int = 3
        backoff: float = 0.5

    value = build("retry:\n  attempts: 5\n").get("retry").with_default(Retry())
    assert value.value() == {"attempts": 5, "backoff": 0.5}
    assert value.populate(Retry) == Retry(attempts=5, backoff=0.5)


def test_with_default_under_a_non_string_key_keeps_existing_data() -> None:
    provider = build("ports:\n  80:\n    name: http\n")
    value = provider.get("ports.80").with_default({"tls": False})
    assert value.value() == {"tls": False, "name": "http"}
    assert value.provider.get("ports").value() == {80: {"tls": False, "name": "http"}}


def test_with_default_rejects_unrepresentable_defaults() -> None:
    with pytest.raises(SerializationError):
        build("a: 1\n").get("a").with_default(object())


def test_new_value_returns_consistent_value() -> None:
    provider = build("a:\n  b: [1, 2]\n")
    with pytest.deprecated_call():
        value = new_value(provider, "a", {"b": (1, 2)}, True)
    assert value == provider.get("a")


@pytest.mark.parametrize(
    ("key", "value", "found"),
    [("a", {"b": [1, 2]}, False), ("missing", None, True), ("a", {"b": [2, 1]}, True)],
)
def test_new_value_rejects_inconsistent_claims(key: str, value: object, found: bool) -> None:
    provider = build("a:\n  b: [1, 2]\n")
    with pytest.deprecated_call(), pytest.raises(InconsistentValueError):
        new_value(provider, key, value, found)
