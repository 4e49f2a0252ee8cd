from __future__ import annotations

import string

import pytest
from hypothesis import given
from hypothesis import strategies as st

from lib_layered_yaml.adapters.yaml_codec import decode, encode
from lib_layered_yaml.application.merge import merge_sources, merge_trees
from lib_layered_yaml.domain.errors import DuplicateKeyError, SourceParseError


TEXT = st.text(alphabet=string.ascii_letters + string.digits + " _-", max_size=6)
KEY = st.text(alphabet=string.ascii_lowercase, min_size=1, max_size=5)
SCALAR = st.one_of(st.booleans(), st.integers(), TEXT)
VALUE = st.recursive(
    SCALAR,
    lambda children: st.one_of(
        st.lists(children, max_size=3),
        st.dictionaries(KEY, children, max_size=3),
    ),
    max_leaves=10,
)
MAPPING = st.dictionaries(KEY, VALUE, max_size=4)


def _source(tree: object) -> bytes:
    return encode(tree).encode("utf-8")


def _merged(*trees: object, strict: bool = True) -> object:
    return decode(merge_sources([_source(tree) for tree in trees], strict=strict), strict=True)


def test_later_scalar_overwrites() -> None:
    merged = _merged({"feature": {"enabled": False}}, {"feature": {"enabled": True}}, {"feature": {"level": "debug"}})
    assert merged == {"feature": {"enabled": True, "level": "debug"}}


def test_nested_merge_retains_previous_keys() -> None:
    merged = _merged({"db": {"host": "localhost", "port": 5432}}, {"db": {"password": "secret"}})
    assert merged == {"db": {"host": "localhost", "port": 5432, "password": "secret"}}


def test_sequences_are_replaced_not_merged() -> None:
    assert _merged({"hosts": ["a", "b", "c"]}, {"hosts": ["z"]}) == {"hosts": ["z"]}


def test_type_mismatch_takes_later_value() -> None:
    assert _merged({"db": {"host": "x"}}, {"db": "sqlite://"}) == {"db": "sqlite://"}
    assert _merged({"db": "sqlite://"}, {"db": {"host": "x"}}) == {"db": {"host": "x"}}


def test_explicit_null_clears_lower_priority_branch() -> None:
    merged = merge_sources([b"db:\n  host: x\n", b"db: null\n"], strict=True)
    assert decode(merged, strict=True) == {"db": None}


def test_empty_and_comment_only_sources_are_skipped() -> None:
    merged = merge_sources([b"a: 1\n", b"", b"# just a comment\n"], strict=True)
    assert decode(merged, strict=True) == {"a": 1}


def test_no_content_yields_empty_document() -> None:
    assert merge_sources([], strict=True) == ""
    assert merge_sources([b"   \n"], strict=True) == ""


def test_null_document_counts_as_content() -> None:
    assert decode(merge_sources([b"a: 1\n", b"~\n"], strict=True), strict=True) is None


def test_strict_rejects_duplicate_keys_within_one_source() -> None:
    with pytest.raises(DuplicateKeyError) as excinfo:
        merge_sources([b"a: 1\n", b"b: 1\nb: 1\n"], strict=True)
    assert excinfo.value.key == "b"
    assert excinfo.value.origin == "source[1]"
    assert excinfo.value.line == 2


def test_strict_rejects_duplicates_that_would_merge_harmlessly() -> None:
    with pytest.raises(DuplicateKeyError):
        merge_sources([b"db:\n  host: x\ndb:\n  port: 1\n"], strict=True)


def test_permissive_accepts_duplicate_keys() -> None:
    merged = merge_sources([b"a: 1\na: 2\n"], strict=False)
    assert decode(merged, strict=True) == {"a": 2}


def test_same_key_across_sources_is_not_a_duplicate() -> None:
    merged = merge_sources([b"a: 1\n", b"a: 2\n"], strict=True)
    assert decode(merged, strict=True) == {"a": 2}


def test_parse_errors_name_the_origin() -> None:
    with pytest.raises(SourceParseError, match="base.yaml"):
        merge_sources([b"a: [1, 2\n"], strict=True, origins=["base.yaml"])


def test_non_string_keys_survive_merge() -> None:
    merged = decode(merge_sources([b"1: one\n3.5: half\n", b"2: two\n1: uno\n"], strict=True), strict=True)
    assert merged == {1: "uno", 3.5: "half", 2: "two"}


def test_keys_colliding_across_sources_are_refused() -> None:
    with pytest.raises(SourceParseError, match="override.yaml"):
        merge_sources([b"a:\n  1: one\n", b"a:\n  true: yes-key\n"], strict=True, origins=["base.yaml", "override.yaml"])


def test_merge_is_idempotent() -> None:
    sources = [_source({"db": {"host": "localhost", "ports": [5432]}}), _source({"db": {"host": "remote"}})]
    assert merge_sources(sources, strict=True) == merge_sources(sources, strict=True)


@given(MAPPING, MAPPING)
def test_disjoint_keys_union_in_any_order(lhs, rhs) -> None:
    left = {f"l{key}": value for key, value in lhs.items()}
    right = {f"r{key}": value for key, value in rhs.items()}
    forward = merge_trees(merge_trees(None, left), right)
    backward = merge_trees(merge_trees(None, right), left)
    assert forward == backward == {**left, **right}


@given(MAPPING, MAPPING, MAPPING)
def test_merge_associative(lhs, mid, rhs) -> None:
    left_then_right = merge_trees(merge_trees(lhs, mid), rhs)
    right_then_left = merge_trees(lhs, merge_trees(mid, rhs))
    assert left_then_right == right_then_left


@given(MAPPING, MAPPING)
def test_last_layer_wins_for_non_mappings(lhs, rhs) -> None:
    merged = merge_trees(lhs, rhs)
    for key, value in rhs.items():
        if not isinstance(value, dict):
            assert merged[key] == value


@given(MAPPING, MAPPING)
def test_serialised_merge_matches_tree_merge(lhs, rhs) -> None:
    assert _merged(lhs, rhs) == merge_trees(lhs, rhs)
