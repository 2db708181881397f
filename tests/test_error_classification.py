import pytest

from style_guide_core import (
    CONNECTION_FAILURE_MESSAGE,
    DNS_FAILURE_MESSAGE,
    PARSE_FAILURE_MESSAGE,
    STAGE_EXTRACT,
    STAGE_FETCH,
    TIMEOUT_MESSAGE,
    ErrorKind,
    ExtractionError,
    classify_error,
)


@pytest.mark.parametrize(
    "detail, kind, message",
    [
        ("Failed to fetch website: dns resolution error", ErrorKind.NETWORK_DNS, DNS_FAILURE_MESSAGE),
        ("Failed to fetch website: failed to resolve host", ErrorKind.NETWORK_DNS, DNS_FAILURE_MESSAGE),
        ("Failed to fetch website: operation timeout", ErrorKind.NETWORK_TIMEOUT, TIMEOUT_MESSAGE),
        ("Failed to fetch website: connection refused", ErrorKind.NETWORK_CONNECTION, CONNECTION_FAILURE_MESSAGE),
        ("Failed to extract styles: no <head>", ErrorKind.PARSE_FAILURE, PARSE_FAILURE_MESSAGE),
    ],
)
def test_backend_text_is_classified(detail, kind, message):
    result = classify_error(detail)
    assert result.kind is kind
    assert result.message == message


def test_dns_wins_over_connection_keywords():
    result = classify_error(
        RuntimeError("Failed to fetch website: error trying to connect: dns error")
    )
    assert result.kind is ErrorKind.NETWORK_DNS


def test_unmatched_fetch_failure_keeps_raw_detail():
    detail = "Failed to fetch website: HTTP 503"
    result = classify_error(RuntimeError(detail))
    assert result.kind is ErrorKind.NETWORK_OTHER
    assert result.message == f"Network error: {detail}"


def test_unrecognised_error_is_shown_verbatim():
    result = classify_error(ValueError("backend exploded"))
    assert result.kind is ErrorKind.UNCLASSIFIED
    assert result.message == "backend exploded"


def test_empty_error_text_falls_back_to_type_name():
    result = classify_error(KeyError())
    assert result.kind is ErrorKind.UNCLASSIFIED
    assert result.message == "KeyError"


def test_stage_tag_takes_precedence_over_text():
    fetch = classify_error(ExtractionError("socket timeout", stage=STAGE_FETCH))
    extract = classify_error(ExtractionError("unexpected token", stage=STAGE_EXTRACT))

    assert fetch.kind is ErrorKind.NETWORK_TIMEOUT
    assert extract.kind is ErrorKind.PARSE_FAILURE


@pytest.mark.parametrize(
    "detail",
    [
        "Failed to fetch website: HTTP status server error (503 Service Unavailable) "
        "for url (https://connect.example.com/)",
        "Failed to fetch website: Read timed out.",
        "Failed to fetch website: DNS lookup failed",
    ],
)
def test_untagged_text_only_matches_backend_keywords(detail):
    result = classify_error(RuntimeError(detail))
    assert result.kind is ErrorKind.NETWORK_OTHER
    assert result.message == f"Network error: {detail}"


def test_tagged_fetch_errors_accept_wider_phrasing():
    timed_out = classify_error(ExtractionError("Failed to fetch website: Read timed out.", stage=STAGE_FETCH))
    upper_dns = classify_error(ExtractionError("Failed to fetch website: DNS lookup failed", stage=STAGE_FETCH))
    hostname = classify_error(
        ExtractionError("Failed to fetch website: 503 for https://connect.example.com/", stage=STAGE_FETCH)
    )

    assert timed_out.kind is ErrorKind.NETWORK_TIMEOUT
    assert upper_dns.kind is ErrorKind.NETWORK_DNS
    assert hostname.kind is ErrorKind.NETWORK_OTHER
