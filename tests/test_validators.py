import pytest

from addon_release.validators import (
    is_valid_addon_name,
    is_valid_field,
    is_valid_namespace,
    is_valid_region,
    is_valid_url,
)


@pytest.mark.parametrize("region", ["us-east-1", "ap-south-1", "eu-central-2", "abc"])
def test_valid_regions(region):
    assert is_valid_region(region)


@pytest.mark.parametrize(
    "region",
    ["US-EAST-1", "a", "ab", "us-east-", "1us-east", "us_east_1", "a" * 26, ""],
)
def test_invalid_regions(region):
    assert not is_valid_region(region)


def test_region_length_bounds():
    assert is_valid_region("a" * 25)
    assert not is_valid_region("a" * 26)


@pytest.mark.parametrize("namespace", ["addon-ns1", "default", "a", "kube-system", "a" * 63])
def test_valid_namespaces(namespace):
    assert is_valid_namespace(namespace)


@pytest.mark.parametrize("namespace", ["a" * 64, "-addon", "addon-", "Addon", "addon_ns", ""])
def test_invalid_namespaces(namespace):
    assert not is_valid_namespace(namespace)


@pytest.mark.parametrize(
    "url",
    [
        "https://charts.example.com/my-addon",
        "oci://registry.example.com/charts/my-addon",
        "http://localhost:8080/index.yaml",
    ],
)
def test_valid_urls(url):
    assert is_valid_url(url)


@pytest.mark.parametrize("url", ["", "not a url", "charts.example.com/my-addon", " https://example.com"])
def test_invalid_urls(url):
    assert not is_valid_url(url)


def test_is_valid_field_dispatches():
    assert is_valid_field("region", "us-east-1")
    assert not is_valid_field("namespace", "-bad")
    assert is_valid_field("url", "https://example.com")


def test_is_valid_field_unknown_kind():
    with pytest.raises(ValueError):
        is_valid_field("colour", "blue")


@pytest.mark.parametrize("name", ["my-addon", "addon_2", "Addon.v2", "x"])
def test_valid_addon_names(name):
    assert is_valid_addon_name(name)
    assert is_valid_field("addon_name", name)


@pytest.mark.parametrize(
    "name",
    ["x/..", "..", "../other", "a\\b", "a..b", "-addon", ".hidden", "addon.", "addon.lock", "my addon", ""],
)
def test_invalid_addon_names(name):
    assert not is_valid_addon_name(name)
