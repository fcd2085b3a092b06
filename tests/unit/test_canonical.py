# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import itertools
from hashlib import sha256

import pytest
from neptune_sigv4 import URI, CanonicalRequestBuilder, Field, Fields
from neptune_sigv4.canonical import EMPTY_SHA256_HASH, host_header_value
from neptune_sigv4.exceptions import InvalidRequestError

from .vectors import AMZ_DATE, SPARQL_QUERY_URL

BUILDER = CanonicalRequestBuilder()


def test_sparql_get_canonical_request() -> None:
    canonical_request = BUILDER.build(
        method="GET",
        uri=SPARQL_QUERY_URL,
        headers=[("host", "host"), ("x-amz-date", AMZ_DATE)],
        body=None,
    )
    assert canonical_request.to_string() == (
        "GET\n"
        "/sparql\n"
        "query=SELECT%20%2A%20%7B%20%3Fs%20%3Fp%20%3Fo%20%7D\n"
        "host:host\n"
        f"x-amz-date:{AMZ_DATE}\n"
        "\n"
        "host;x-amz-date\n"
        f"{EMPTY_SHA256_HASH}"
    )
    assert canonical_request.digest() == (
        "f2962ef4b74306d4071a6eb8ef8c93f0eb90cf3509c1b4051b1e41965c436fb5"
    )


def test_build_is_deterministic() -> None:
    def build():
        return BUILDER.build(
            method="POST",
            uri="https://host:8182/sparql",
            headers=[("Content-Type", "text/plain"), ("Host", "host:8182")],
            body=b"update=CLEAR%20ALL",
        )

    first = build()
    second = build()
    assert first == second
    assert first.to_string() == second.to_string()


def test_header_case_and_order_are_insignificant() -> None:
    headers = [
        ("Host", "host"),
        ("X-Amz-Date", AMZ_DATE),
        ("Content-Type", "application/x-www-form-urlencoded"),
    ]
    results = set()
    for permutation in itertools.permutations(headers):
        for case in (str.lower, str.upper, str.title):
            request = BUILDER.build(
                method="post",
                uri="https://host/sparql",
                headers=[(case(name), value) for name, value in permutation],
                body=b"",
            )
            results.add(request.to_string())
    assert len(results) == 1


@pytest.mark.parametrize(
    "value,expected",
    [
        ("  leading", "leading"),
        ("trailing  ", "trailing"),
        ("a   b\t c", "a b c"),
    ],
)
def test_header_values_are_trimmed_and_collapsed(value: str, expected: str) -> None:
    canonical_headers = BUILDER.canonical_headers([("X-Custom", value)])
    assert canonical_headers == (("x-custom", expected),)


def test_repeated_headers_join_in_original_order() -> None:
    canonical_headers = BUILDER.canonical_headers(
        [("X-Multi", "b"), ("x-other", "z"), ("X-MULTI", "a")]
    )
    assert canonical_headers == (("x-multi", "b,a"), ("x-other", "z"))


def test_headers_accepts_fields_and_mappings() -> None:
    fields = Fields([Field(name="X-Multi", values=["one", "two"])])
    assert BUILDER.canonical_headers(fields) == (("x-multi", "one,two"),)
    assert BUILDER.canonical_headers({"X-Single": "v"}) == (("x-single", "v"),)


def test_authorization_header_is_never_signed() -> None:
    canonical_request = BUILDER.build(
        method="GET",
        uri="https://host/",
        headers=[("Authorization", "stale"), ("host", "host")],
        body=None,
    )
    assert canonical_request.signed_headers == "host"
    assert canonical_request.header("authorization") is None


@pytest.mark.parametrize(
    "path,expected",
    [
        (None, "/"),
        ("", "/"),
        ("/", "/"),
        ("/sparql", "/sparql"),
        ("/a/./b/../c", "/a/c"),
        ("/a//b", "/a/b"),
        ("///a", "/a"),
        ("/a////b///", "/a/b/"),
        ("/with space", "/with%20space"),
        ("/already%20encoded", "/already%2520encoded"),
    ],
)
def test_canonical_path(path: str | None, expected: str) -> None:
    assert BUILDER.canonical_path(path) == expected


def test_runs_of_slashes_collapse_in_built_request() -> None:
    canonical_request = BUILDER.build(
        method="GET", uri="https://host///a///b", headers=[], body=None
    )
    assert canonical_request.canonical_uri == "/a/b"


@pytest.mark.parametrize(
    "query,expected",
    [
        (None, ""),
        ("", ""),
        ("b=2&a=1", "a=1&b=2"),
        ("a=2&a=1", "a=1&a=2"),
        ("flag", "flag="),
        ("a=1&&b=2", "a=1&b=2"),
        ("q=a+b", "q=a%20b"),
        ("q=%7E-_.", "q=~-_."),
        ("q=%2a", "q=%2A"),
        ("q=a/b", "q=a%2Fb"),
    ],
)
def test_canonical_query(query: str | None, expected: str) -> None:
    assert BUILDER.canonical_query(query) == expected


def test_payload_hash() -> None:
    assert BUILDER.payload_hash(None) == EMPTY_SHA256_HASH
    assert BUILDER.payload_hash(b"") == EMPTY_SHA256_HASH
    assert BUILDER.payload_hash(b"abc") == sha256(b"abc").hexdigest()


def test_single_byte_change_changes_payload_hash() -> None:
    body = b"update=INSERT%20DATA%20%7B%7D"
    original = BUILDER.payload_hash(body)
    for index in range(len(body)):
        changed = bytearray(body)
        changed[index] ^= 0x01
        assert BUILDER.payload_hash(bytes(changed)) != original


def test_payload_hash_rejects_streams() -> None:
    with pytest.raises(TypeError):
        BUILDER.payload_hash(iter([b"abc"]))  # type: ignore


@pytest.mark.parametrize("method", ["TRACE", "CONNECT", "FETCH", ""])
def test_unsupported_method(method: str) -> None:
    with pytest.raises(InvalidRequestError):
        BUILDER.build(method=method, uri="https://host/", headers=[], body=None)


@pytest.mark.parametrize(
    "uri",
    [
        "host/sparql",
        "ftp://host/sparql",
        "https:///sparql",
        "https://host:notaport/sparql",
        URI(scheme="ftp", host="host"),
        URI(host=""),
    ],
)
def test_malformed_uri(uri: str | URI) -> None:
    with pytest.raises(InvalidRequestError):
        BUILDER.build(method="GET", uri=uri, headers=[], body=None)


def test_method_is_upper_cased() -> None:
    canonical_request = BUILDER.build(
        method="get", uri="https://host/", headers=[], body=None
    )
    assert canonical_request.method == "GET"


@pytest.mark.parametrize(
    "uri,expected",
    [
        (URI(host="host"), "host"),
        (URI(host="host", port=443), "host"),
        (URI(scheme="http", host="host", port=80), "host"),
        (URI(host="host", port=8182), "host:8182"),
        (URI(scheme="http", host="host", port=443), "host:443"),
        (URI(host="::1", port=8182), "[::1]:8182"),
        (URI(host="host", username="user", password="pass"), "host"),
    ],
)
def test_host_header_value(uri: URI, expected: str) -> None:
    assert host_header_value(uri) == expected
