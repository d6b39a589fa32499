import pytest
from starlette.datastructures import Headers, QueryParams

from ota_api.assets import parse_asset_query
from ota_api.errors import ClientInputError
from ota_api.negotiation import negotiate_update_request, parse_protocol_version


def headers(*pairs):
    return Headers(raw=[(name.encode(), value.encode()) for name, value in pairs])


def test_defaults_to_protocol_0_without_signature():
    request = negotiate_update_request(
        headers(("expo-platform", "ios"), ("expo-runtime-version", "1.0.0")),
        QueryParams(""),
    )
    assert request.protocol_version == 0
    assert request.platform == "ios"
    assert request.runtime_version == "1.0.0"
    assert request.current_update_id is None
    assert request.wants_signature is False


def test_header_values_take_precedence_over_query():
    request = negotiate_update_request(
        headers(
            ("expo-platform", "android"),
            ("expo-runtime-version", "2.0.0"),
            ("expo-protocol-version", "1"),
            ("expo-current-update-id", "abc"),
            ("expo-embedded-update-id", "def"),
            ("expo-expect-signature", "sig"),
        ),
        QueryParams("platform=ios&runtime-version=1.0.0"),
    )
    assert (request.platform, request.runtime_version) == ("android", "2.0.0")
    assert request.protocol_version == 1
    assert request.current_update_id == "abc"
    assert request.embedded_update_id == "def"
    assert request.wants_signature is True


def test_repeated_platform_header_is_rejected():
    with pytest.raises(ClientInputError):
        negotiate_update_request(
            headers(("expo-platform", "ios"), ("expo-platform", "ios"), ("expo-runtime-version", "1")),
            QueryParams(""),
        )


@pytest.mark.parametrize("raw", ["2", "-1", "one", "0, 1", ""])
def test_protocol_version_outside_0_and_1_is_rejected(raw):
    with pytest.raises(ClientInputError):
        parse_protocol_version(raw)


def test_blank_runtime_version_is_rejected():
    with pytest.raises(ClientInputError, match="No runtimeVersion provided."):
        negotiate_update_request(
            headers(("expo-platform", "ios"), ("expo-runtime-version", "  ")),
            QueryParams(""),
        )


def test_parse_asset_query():
    query = parse_asset_query(QueryParams("asset=assets%2Ficon&runtimeVersion=1.0.0&platform=android"))
    assert (query.asset, query.runtime_version, query.platform) == ("assets/icon", "1.0.0", "android")


def test_parse_asset_query_rejects_repeated_asset():
    with pytest.raises(ClientInputError):
        parse_asset_query(QueryParams("asset=a&asset=b&runtimeVersion=1&platform=ios"))


def test_runtime_version_is_kept_verbatim():
    request = negotiate_update_request(
        headers(("expo-platform", "android")),
        QueryParams("runtime-version=1.0.0+"),
    )
    assert request.runtime_version == "1.0.0 "
