"""Spaces object store adapter against a stubbed boto3 client."""
from __future__ import annotations

from typing import Any, Iterator

import pytest
from boto3.session import Session
from botocore.stub import ANY, Stubber

from motivate.clients.remote_store import InvalidObjectReference, ObjectStoreError
from motivate.clients.spaces import SpacesConfig, SpacesConfigurationError, SpacesObjectStore
from motivate.config import Settings

CONFIG = SpacesConfig(
    key="key",
    secret="secret",
    region="nyc3",
    bucket="motivate",
    api_endpoint="https://nyc3.digitaloceanspaces.com",
    public_endpoint="https://motivate.nyc3.cdn.digitaloceanspaces.com",
)

SPACES_SETTINGS: dict[str, Any] = {
    "spaces_key": "abc",
    "spaces_secret": "def",
    "spaces_region": "nyc3",
    "spaces_bucket": "motivate",
    "spaces_endpoint": "motivate.nyc3.cdn.digitaloceanspaces.com/",
}


def _settings(**overrides: Any) -> Settings:
    return Settings(_env_file=None, **{**SPACES_SETTINGS, **overrides})


@pytest.fixture
def stubbed() -> Iterator[tuple[SpacesObjectStore, Stubber]]:
    client = Session().client(
        "s3",
        region_name=CONFIG.region,
        endpoint_url=CONFIG.api_endpoint,
        aws_access_key_id=CONFIG.key,
        aws_secret_access_key=CONFIG.secret,
    )
    with Stubber(client) as stubber:
        yield SpacesObjectStore(CONFIG, client=client), stubber
        stubber.assert_no_pending_responses()


def test_config_reports_missing_variables() -> None:
    settings = _settings(spaces_key=None, spaces_secret=" ", spaces_bucket=None, spaces_endpoint=None)

    with pytest.raises(SpacesConfigurationError) as excinfo:
        SpacesConfig.from_settings(settings)
    message = str(excinfo.value)
    assert "DO_SPACES_KEY, DO_SPACES_NAME, DO_SPACES_SECRET" in message
    assert "DO_SPACES_REGION" not in message


def test_config_rejects_placeholder_secret() -> None:
    with pytest.raises(SpacesConfigurationError) as excinfo:
        SpacesConfig.from_settings(_settings(spaces_secret="changeme"))
    assert "DO_SPACES_SECRET" in str(excinfo.value)


def test_config_normalizes_endpoint() -> None:
    config = SpacesConfig.from_settings(_settings())
    assert config.api_endpoint == "https://nyc3.digitaloceanspaces.com"
    assert config.public_endpoint == "https://motivate.nyc3.cdn.digitaloceanspaces.com"
    assert config.bucket == "motivate"

    explicit = SpacesConfig.from_settings(_settings(spaces_endpoint="http://cdn.example.com/"))
    assert explicit.public_endpoint == "http://cdn.example.com"


def test_config_reads_the_do_spaces_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DO_SPACES_KEY", "from-env")
    monkeypatch.setenv("DO_SPACES_NAME", "env-bucket")

    settings = Settings(_env_file=None)
    assert settings.spaces_key == "from-env"
    assert settings.spaces_bucket == "env-bucket"


def test_client_is_built_lazily_from_config() -> None:
    store = SpacesObjectStore(CONFIG)
    client = store.client
    assert client is store.client
    assert client.meta.endpoint_url == "https://nyc3.digitaloceanspaces.com"
    assert client.meta.region_name == "nyc3"


@pytest.mark.asyncio
async def test_download_url_checks_the_object_exists(stubbed) -> None:
    store, stubber = stubbed
    stubber.add_response("head_object", {"ContentLength": 10}, {"Bucket": "motivate", "Key": "videos/a b.mp4"})

    url = await store.download_url("videos/a b.mp4")
    assert url == "https://motivate.nyc3.cdn.digitaloceanspaces.com/videos/a%20b.mp4"
    assert store.ref_from_url(url) == "videos/a b.mp4"


@pytest.mark.asyncio
async def test_update_content_type_copies_in_place(stubbed) -> None:
    store, stubber = stubbed
    stubber.add_response(
        "copy_object",
        {},
        {
            "Bucket": "motivate",
            "Key": "videos/a.mov",
            "CopySource": ANY,
            "ContentType": "video/mp4",
            "MetadataDirective": "REPLACE",
            "ACL": "public-read",
        },
    )
    await store.update_content_type("videos/a.mov", "video/mp4")


@pytest.mark.asyncio
async def test_client_errors_are_translated(stubbed) -> None:
    store, stubber = stubbed
    stubber.add_client_error("delete_object", service_error_code="AccessDenied", service_message="Access Denied")
    stubber.add_client_error("head_object", service_error_code="404", http_status_code=404)

    with pytest.raises(ObjectStoreError) as denied:
        await store.delete("videos/a.mp4")
    assert denied.value.code == "storage/unauthorized"
    assert denied.value.message == "Access Denied"

    with pytest.raises(ObjectStoreError) as missing:
        await store.download_url("videos/gone.mp4")
    assert missing.value.code == "storage/object-not-found"


def test_ref_from_url_requires_public_host() -> None:
    store = SpacesObjectStore(CONFIG, client=object())
    with pytest.raises(InvalidObjectReference):
        store.ref_from_url("https://elsewhere.example.com/videos/a.mp4")
    with pytest.raises(InvalidObjectReference):
        store.ref_from_url("https://motivate.nyc3.cdn.digitaloceanspaces.com/")
