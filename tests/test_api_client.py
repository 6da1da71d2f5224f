"""Tests for the rate-limited GitHub API client."""

import pytest
import requests

from a11y_miner.api_client import GitHubAPIClient, HttpError, MalformedResponse, TransientRateLimit
from a11y_miner.rate_limiter import CredentialPool

from conftest import FakeResponse, FakeSession, encode_content


def make_client(responses, tokens=("t0", "t1"), clock=None, **kwargs):
    pool_kwargs = {}
    if clock is not None:
        pool_kwargs = {"sleep": clock.sleep, "clock": clock.time}
    pool = CredentialPool(list(tokens), **pool_kwargs)
    session = FakeSession(responses)
    sleep = clock.sleep if clock is not None else (lambda s: None)
    return GitHubAPIClient(pool, session=session, sleep=sleep, **kwargs), session


def rate_limited(reset_at=0):
    return FakeResponse(
        403,
        {"message": "API rate limit exceeded"},
        headers={"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": str(reset_at)},
    )


def test_missing_file_returns_none():
    client, _ = make_client([FakeResponse(404, {"message": "Not Found"})])
    assert client.get_file_content("acme/storefront", "package.json") is None


def test_server_error_raises_http_error():
    client, _ = make_client([FakeResponse(500, {"message": "boom"})])
    with pytest.raises(HttpError) as excinfo:
        client.get_json("/repos/acme/storefront")
    assert excinfo.value.status_code == 500


def test_forbidden_without_rate_limit_is_http_error():
    client, _ = make_client([FakeResponse(403, {"message": "Resource not accessible"})])
    with pytest.raises(HttpError):
        client.get_json("/repos/acme/private")


def test_file_content_is_base64_decoded():
    body = {"content": encode_content('{"devDependencies": {"axe-core": "^4.0.0"}}'), "encoding": "base64"}
    client, session = make_client([FakeResponse(200, body)])

    content = client.get_file_content("acme/storefront", "package.json")

    assert '"axe-core"' in content
    assert session.calls[0]["url"].endswith("/repos/acme/storefront/contents/package.json")


def test_quota_headers_are_recorded_for_active_token():
    response = FakeResponse(200, [], headers={"X-RateLimit-Remaining": "42", "X-RateLimit-Reset": "1700000000"})
    client, _ = make_client([response])

    client.list_directory("acme/storefront")

    assert client.pool.remaining == [42, None]
    assert client.pool.reset_at == [1700000000, None]


def test_rate_limited_call_is_retried_on_next_token():
    client, session = make_client([rate_limited(), FakeResponse(200, [])])

    assert client.list_directory("acme/storefront") == []
    assert session.calls[0]["headers"]["Authorization"] == "Bearer t0"
    assert session.calls[1]["headers"]["Authorization"] == "Bearer t1"
    assert client.pool.index == 1


def test_token_below_floor_rotates_before_the_call():
    client, session = make_client([FakeResponse(200, [])], file_floor=10)
    client.pool.remaining[0] = 3

    client.list_directory("acme/storefront")

    assert session.calls[0]["headers"]["Authorization"] == "Bearer t1"


def test_all_tokens_exhausted_sleeps_until_reset_then_retries(fake_clock):
    reset_at = int(fake_clock.now) + 30
    client, session = make_client(
        [rate_limited(reset_at), FakeResponse(200, [])], tokens=("t0",), clock=fake_clock
    )

    assert client.list_directory("acme/storefront") == []
    assert fake_clock.sleeps == [35]
    assert len(session.calls) == 2


def test_exceeding_attempts_raises_transient_rate_limit(fake_clock):
    reset_at = int(fake_clock.now) + 30
    client, _ = make_client(
        [rate_limited(reset_at), rate_limited(reset_at), rate_limited(reset_at)],
        tokens=("t0",),
        clock=fake_clock,
        max_attempts=3,
    )

    with pytest.raises(TransientRateLimit) as excinfo:
        client.list_directory("acme/storefront")
    assert excinfo.value.reset_at == reset_at


def test_rotation_does_not_use_up_attempts(fake_clock):
    reset_at = int(fake_clock.now) + 30
    client, session = make_client(
        [rate_limited(reset_at), rate_limited(reset_at), FakeResponse(200, [])],
        clock=fake_clock,
        max_attempts=2,
    )

    assert client.list_directory("acme/storefront") == []
    # both tokens exhausted by rotation, then one wait for the reset
    assert fake_clock.sleeps == [35]
    assert len(session.calls) == 3


def test_network_errors_are_retried_with_backoff(fake_clock):
    client, session = make_client(
        [requests.ConnectionError("reset by peer"), FakeResponse(200, [])], clock=fake_clock
    )

    assert client.list_directory("acme/storefront") == []
    assert fake_clock.sleeps == [1]


def test_network_errors_propagate_after_last_attempt():
    client, _ = make_client([requests.Timeout("slow")] * 3)
    with pytest.raises(requests.Timeout):
        client.list_directory("acme/storefront")


def test_non_json_body_is_malformed():
    client, _ = make_client([FakeResponse(200, text="<html>oops</html>")])
    with pytest.raises(MalformedResponse):
        client.get_json("/repos/acme/storefront")


def test_graphql_returns_data():
    client, session = make_client([FakeResponse(200, {"data": {"search": {"nodes": []}}})])

    data = client.graphql("query { x }", {"query": "stars:>1"})

    assert data == {"search": {"nodes": []}}
    assert session.calls[0]["method"] == "POST"
    assert session.calls[0]["json"]["variables"] == {"query": "stars:>1"}


def test_graphql_errors_without_data_are_malformed():
    client, _ = make_client([FakeResponse(200, {"errors": [{"message": "bad query"}]})])
    with pytest.raises(MalformedResponse):
        client.graphql("query { x }")


def test_graphql_rate_limited_error_rotates_token():
    client, session = make_client([
        FakeResponse(200, {"errors": [{"type": "RATE_LIMITED", "message": "limit"}]}),
        FakeResponse(200, {"data": {"ok": True}}),
    ])

    assert client.graphql("query { x }") == {"ok": True}
    assert session.calls[1]["headers"]["Authorization"] == "Bearer t1"
