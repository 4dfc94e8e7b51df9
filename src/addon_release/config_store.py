"""Persistent store of configured addons, keyed by ``name@version``."""

import builtins
import logging
from pathlib import Path
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from addon_release.core.files import FileService
from addon_release.validators import is_valid_addon_name

logger = logging.getLogger(__name__)

KEY_SEPARATOR = "@"


class ConfigurationError(Exception):
    """Exception raised for invalid or unreadable addon configuration."""

    pass


class AddonNotFound(ConfigurationError):
    def __init__(self, key: str) -> None:
        super().__init__(f"No addon configured under '{key}'")
        self.key = key


class AddonIdentity(NamedTuple):
    name: str
    version: str


class AddonRecord(BaseModel):
    """Metadata of one addon as stored in the configuration file."""

    model_config = ConfigDict(populate_by_name=True)

    helm_url: str = Field(alias="helmUrl")
    account_id: str = Field(alias="accId")
    namespace: str
    region: str
    validated: bool = False


_records_adapter = TypeAdapter(dict[str, AddonRecord])


def derive_key(name: str, version: str) -> str:
    """Build the storage key for an addon.

    Raises:
        ConfigurationError: If either part is empty or contains the separator,
            or the name is not usable as a file name and branch name.
    """
    for label, value in (("name", name), ("version", version)):
        if not value:
            raise ConfigurationError(f"Addon {label} must not be empty")
        if KEY_SEPARATOR in value:
            raise ConfigurationError(f"Addon {label} must not contain '{KEY_SEPARATOR}': {value}")
    if not is_valid_addon_name(name):
        raise ConfigurationError(
            f"Addon name {name!r} may only contain letters, digits, '.', '_' and '-', "
            "must start with a letter or digit and must not contain '..'"
        )
    return f"{name}{KEY_SEPARATOR}{version}"


def split_key(key: str) -> AddonIdentity:
    name, sep, version = key.partition(KEY_SEPARATOR)
    if not sep or not name or not version:
        raise ConfigurationError(f"Malformed addon key: {key}")
    return AddonIdentity(name, version)


class ConfigStore:
    """In-memory mapping of addon key to record, written back by :meth:`persist`.

    Mutations only touch memory; nothing reaches the file until
    :meth:`persist` is called.
    """

    def __init__(
        self,
        path: Path,
        records: dict[str, AddonRecord] | None = None,
        *,
        file_service: FileService | None = None,
    ) -> None:
        self._path = path
        self._records: dict[str, AddonRecord] = dict(records or {})
        self._files = file_service or FileService()

    @classmethod
    def load(cls, path: Path, *, file_service: FileService | None = None) -> "ConfigStore":
        """Load the store from ``path``; a missing file gives an empty store.

        Raises:
            ConfigurationError: If the file cannot be parsed.
        """
        files = file_service or FileService()
        if not path.exists():
            logger.debug(f"No configuration at {path}, starting empty")
            return cls(path, file_service=files)

        try:
            raw = files.read_json(path)
            records = _records_adapter.validate_python(raw)
        except (ValueError, ValidationError) as e:
            raise ConfigurationError(f"Invalid configuration file {path}: {e}") from e

        for key in records:
            split_key(key)
        return cls(path, records, file_service=files)

    @property
    def path(self) -> Path:
        return self._path

    def __contains__(self, key: object) -> bool:
        return key in self._records

    def __len__(self) -> int:
        return len(self._records)

    def get(self, key: str) -> AddonRecord:
        """Return the record stored under ``key``.

        Raises:
            AddonNotFound: If no addon uses ``key``.
        """
        try:
            return self._records[key]
        except KeyError:
            raise AddonNotFound(key) from None

    def list(self) -> builtins.list[tuple[AddonIdentity, AddonRecord]]:
        """All addons in insertion order."""
        return [(split_key(key), record) for key, record in self._records.items()]

    def upsert(self, key: str, record: AddonRecord) -> AddonRecord:
        """Store ``record`` under ``key``, replacing any previous record whole.

        The stored copy always has ``validated`` reset to false.
        """
        split_key(key)
        stored = record.model_copy(update={"validated": False})
        self._records[key] = stored
        return stored

    def rename(self, old_key: str, new_key: str, record: AddonRecord) -> builtins.list[str]:
        """Replace the addon at ``old_key`` with ``record`` stored under ``new_key``.

        The new entry takes the old one's position. If ``new_key`` already
        belongs to a different addon, that addon is overwritten.

        Returns:
            Warnings for the caller to show (e.g. an overwritten addon).

        Raises:
            AddonNotFound: If ``old_key`` is not configured.
        """
        if old_key not in self._records:
            raise AddonNotFound(old_key)
        split_key(new_key)

        warnings: list[str] = []
        if new_key != old_key and new_key in self._records:
            message = f"Addon '{new_key}' already existed and was overwritten by '{old_key}'"
            logger.warning(message)
            warnings.append(message)

        stored = record.model_copy(update={"validated": False})
        replaced: dict[str, AddonRecord] = {}
        for key, existing in self._records.items():
            if key == old_key:
                replaced[new_key] = stored
            elif key != new_key:
                replaced[key] = existing
        self._records = replaced
        return warnings

    def delete(self, key: str) -> None:
        """Remove the addon stored under ``key``.

        Raises:
            AddonNotFound: If ``key`` is not configured.
        """
        try:
            del self._records[key]
        except KeyError:
            raise AddonNotFound(key) from None

    def persist(self) -> None:
        """Write the whole mapping to the backing file.

        Raises:
            ConfigurationError: If the file cannot be written.
        """
        data = _records_adapter.dump_python(self._records, by_alias=True, mode="json")
        try:
            self._files.write_json(self._path, data)
        except OSError as e:
            raise ConfigurationError(f"Could not write configuration to {self._path}: {e}") from e
        logger.debug(f"Wrote {len(self._records)} addons to {self._path}")
