import httpx
import pytest

from cfaccess.resolver import DEFAULT_PROVIDERS, AddressResolver, IpProvider, ProviderError, ResolutionFailure

from conftest import mock_client


PROVIDERS = (
    IpProvider("https://a.example/json", "ip"),
    IpProvider("https://b.example/all.json", "ip_addr"),
    IpProvider("https://c.example/nested", "data.address"),
    IpProvider("https://d.example/plain"),
)


def _resolver(routes: dict) -> tuple[AddressResolver, list[str]]:
    """routes maps URL -> httpx.Response or an exception to raise."""
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        calls.append(url)
        result = routes.get(url, httpx.Response(404))
        if isinstance(result, Exception):
            raise result
        return result

    return AddressResolver(PROVIDERS, client=mock_client(handler)), calls


def test_default_provider_table():
    assert len(DEFAULT_PROVIDERS) >= 10
    assert DEFAULT_PROVIDERS[0] == IpProvider("https://api.ipify.org?format=json", "ip")
    assert DEFAULT_PROVIDERS[2].json_field == "ip_addr"
    assert [p.json_field for p in DEFAULT_PROVIDERS[-3:]] == [None, None, None]


def test_first_provider_wins():
    resolver, calls = _resolver({"https://a.example/json": httpx.Response(200, json={"ip": "198.51.100.7"})})
    resolved = resolver.resolve()
    assert resolved.address == "198.51.100.7"
    assert resolved.provider == "https://a.example/json"
    assert resolved.failures == ()
    assert calls == ["https://a.example/json"]


def test_falls_through_failures_in_order():
    resolver, calls = _resolver(
        {
            "https://a.example/json": httpx.ConnectError("refused"),
            "https://b.example/all.json": httpx.Response(503, text="busy"),
            "https://c.example/nested": httpx.Response(200, json={"data": {"address": "203.0.113.9"}}),
        }
    )
    resolved = resolver.resolve()
    assert resolved.address == "203.0.113.9"
    assert calls == ["https://a.example/json", "https://b.example/all.json", "https://c.example/nested"]
    assert len(resolved.failures) == 2
    assert all(isinstance(f, ProviderError) for f in resolved.failures)
    assert "HTTP 503" in str(resolved.failures[1])


@pytest.mark.parametrize(
    "payload",
    [
        {"other": "1.2.3.4"},
        {"ip": ""},
        {"ip": 12345},
        ["1.2.3.4"],
    ],
)
def test_json_field_missing_or_not_a_string_is_a_failure(payload):
    resolver, _ = _resolver(
        {
            "https://a.example/json": httpx.Response(200, json=payload),
            "https://d.example/plain": httpx.Response(200, text="192.0.2.1\n"),
        }
    )
    resolved = resolver.resolve()
    assert resolved.address == "192.0.2.1"
    assert "could not find 'ip'" in str(resolved.failures[0])


def test_invalid_json_is_a_failure():
    resolver, _ = _resolver(
        {
            "https://a.example/json": httpx.Response(200, text="<html>oops</html>"),
            "https://d.example/plain": httpx.Response(200, text="192.0.2.1"),
        }
    )
    resolved = resolver.resolve()
    assert resolved.address == "192.0.2.1"
    assert "invalid JSON" in str(resolved.failures[0])


def test_plain_text_is_trimmed():
    resolver, _ = _resolver({"https://d.example/plain": httpx.Response(200, text="  192.0.2.44 \r\n")})
    assert resolver.resolve().address == "192.0.2.44"


def test_plain_text_without_dot_is_rejected():
    resolver, _ = _resolver({"https://d.example/plain": httpx.Response(200, text="rate limited")})
    with pytest.raises(ResolutionFailure) as exc:
        resolver.resolve()
    assert "received invalid IP" in str(exc.value)


def test_all_providers_fail_reports_last_error():
    resolver, calls = _resolver(
        {
            "https://a.example/json": httpx.ReadTimeout("slow"),
            "https://d.example/plain": httpx.Response(500, text="down"),
        }
    )
    with pytest.raises(ResolutionFailure) as exc:
        resolver.resolve()
    assert len(calls) == len(PROVIDERS)
    assert isinstance(exc.value.last_error, ProviderError)
    assert exc.value.last_error.url == "https://d.example/plain"
    assert "HTTP 500" in str(exc.value)


def test_empty_provider_list_fails():
    resolver = AddressResolver((), client=mock_client(lambda r: httpx.Response(200)))
    with pytest.raises(ResolutionFailure) as exc:
        resolver.resolve()
    assert exc.value.last_error is None
