import json
import os

import pytest

from addon_release.config_store import (
    AddonIdentity,
    AddonNotFound,
    AddonRecord,
    ConfigStore,
    ConfigurationError,
    derive_key,
    split_key,
)


def _record(**overrides) -> AddonRecord:
    values = {
        "helm_url": "https://charts.example.com/my-addon",
        "account_id": "123456789012",
        "namespace": "addon-ns1",
        "region": "us-east-1",
    }
    values.update(overrides)
    return AddonRecord(**values)


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "config.json"


def test_derive_key_format():
    assert derive_key("my-addon", "1.0.0") == "my-addon@1.0.0"
    assert split_key("my-addon@1.0.0") == AddonIdentity("my-addon", "1.0.0")


@pytest.mark.parametrize(
    "first, second",
    [
        (("a-b", "1"), ("a", "b-1")),
        (("addon", "1.0"), ("addon1", ".0")),
        (("x", "1.0.0"), ("x", "1.0.00")),
    ],
)
def test_derive_key_distinguishes_pairs(first, second):
    assert derive_key(*first) != derive_key(*second)


@pytest.mark.parametrize("name, version", [("my@addon", "1.0"), ("my-addon", "1@0"), ("", "1.0"), ("my-addon", "")])
def test_derive_key_rejects_ambiguous_parts(name, version):
    with pytest.raises(ConfigurationError):
        derive_key(name, version)


def test_load_missing_file_is_empty(config_path):
    store = ConfigStore.load(config_path)

    assert len(store) == 0
    assert store.list() == []
    assert not config_path.exists()


def test_load_reads_existing_records(config_path):
    config_path.write_text(
        json.dumps(
            {
                "my-addon@1.0.0": {
                    "helmUrl": "oci://registry.example.com/charts/my-addon",
                    "accId": "123456789012",
                    "namespace": "addon-ns1",
                    "region": "us-west-2",
                    "validated": True,
                }
            }
        )
    )

    store = ConfigStore.load(config_path)
    record = store.get("my-addon@1.0.0")

    assert record.helm_url == "oci://registry.example.com/charts/my-addon"
    assert record.account_id == "123456789012"
    assert record.validated is True


@pytest.mark.parametrize("content", ["{not json", "[]", '{"no-separator": {"helmUrl": "x"}}'])
def test_load_rejects_invalid_file(config_path, content):
    config_path.write_text(content)

    with pytest.raises(ConfigurationError):
        ConfigStore.load(config_path)


def test_get_unknown_key(config_path):
    with pytest.raises(AddonNotFound) as excinfo:
        ConfigStore(config_path).get("nope@1.0")

    assert excinfo.value.key == "nope@1.0"


def test_upsert_resets_validated(config_path):
    store = ConfigStore(config_path, {"my-addon@1.0.0": _record(validated=True)})

    store.upsert("my-addon@1.0.0", _record(validated=True))

    assert store.get("my-addon@1.0.0").validated is False


def test_upsert_replaces_whole_record(config_path):
    store = ConfigStore(config_path)
    store.upsert("my-addon@1.0.0", _record())

    store.upsert("my-addon@1.0.0", _record(region="eu-west-1", namespace="other"))

    assert store.get("my-addon@1.0.0") == _record(region="eu-west-1", namespace="other")


def test_mutations_stay_in_memory_until_persist(config_path):
    store = ConfigStore(config_path)
    store.upsert("my-addon@1.0.0", _record())

    assert not config_path.exists()

    store.persist()

    assert json.loads(config_path.read_text()) == {
        "my-addon@1.0.0": {
            "helmUrl": "https://charts.example.com/my-addon",
            "accId": "123456789012",
            "namespace": "addon-ns1",
            "region": "us-east-1",
            "validated": False,
        }
    }


def test_persist_round_trips_through_load(config_path):
    store = ConfigStore(config_path)
    store.upsert("b-addon@2.0", _record())
    store.upsert("a-addon@1.0", _record(region="eu-west-1"))
    store.persist()

    reloaded = ConfigStore.load(config_path)

    assert [identity for identity, _ in reloaded.list()] == [
        AddonIdentity("b-addon", "2.0"),
        AddonIdentity("a-addon", "1.0"),
    ]
    assert reloaded.get("a-addon@1.0").region == "eu-west-1"


def test_persist_leaves_no_temporary_files(config_path):
    store = ConfigStore(config_path)
    store.upsert("my-addon@1.0.0", _record())
    store.persist()
    store.persist()

    assert os.listdir(config_path.parent) == ["config.json"]


def test_rename_leaves_only_new_key(config_path):
    store = ConfigStore(config_path)
    store.upsert("first@1.0", _record())
    store.upsert("my-addon@1.0.0", _record(validated=True))
    store.upsert("last@1.0", _record())

    warnings = store.rename("my-addon@1.0.0", "my-addon@2.0.0", _record(region="eu-west-1", validated=True))

    assert warnings == []
    assert "my-addon@1.0.0" not in store
    assert store.get("my-addon@2.0.0").region == "eu-west-1"
    assert store.get("my-addon@2.0.0").validated is False
    assert [f"{i.name}@{i.version}" for i, _ in store.list()] == ["first@1.0", "my-addon@2.0.0", "last@1.0"]


def test_rename_to_same_key_edits_in_place(config_path):
    store = ConfigStore(config_path, {"my-addon@1.0.0": _record(validated=True)})

    store.rename("my-addon@1.0.0", "my-addon@1.0.0", _record(namespace="edited"))

    assert len(store) == 1
    assert store.get("my-addon@1.0.0").namespace == "edited"
    assert store.get("my-addon@1.0.0").validated is False


def test_rename_onto_other_addon_warns(config_path, caplog):
    store = ConfigStore(config_path)
    store.upsert("my-addon@1.0.0", _record())
    store.upsert("my-addon@2.0.0", _record(region="eu-west-1"))

    warnings = store.rename("my-addon@1.0.0", "my-addon@2.0.0", _record(region="ap-south-1"))

    assert len(warnings) == 1
    assert "my-addon@2.0.0" in warnings[0]
    assert "overwritten" in caplog.text
    assert len(store) == 1
    assert store.get("my-addon@2.0.0").region == "ap-south-1"


def test_rename_unknown_key(config_path):
    with pytest.raises(AddonNotFound):
        ConfigStore(config_path).rename("nope@1.0", "new@1.0", _record())


def test_delete(config_path):
    store = ConfigStore(config_path, {"my-addon@1.0.0": _record()})

    store.delete("my-addon@1.0.0")

    assert len(store) == 0
    with pytest.raises(AddonNotFound):
        store.delete("my-addon@1.0.0")


@pytest.mark.parametrize("name", ["x/..", "../escape", "a\\b", "my addon"])
def test_derive_key_rejects_path_like_names(name):
    with pytest.raises(ConfigurationError) as excinfo:
        derive_key(name, "1.0.0")

    assert repr(name) in str(excinfo.value)
