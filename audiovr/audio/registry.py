"""
Asset Registry.

Holds audio asset metadata and resolves asset ids to loadable resources.
Catalogs can be registered in code or loaded from JSON files validated
against the bundled asset schema.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterator, Mapping
from urllib.parse import urljoin, urlparse

import jsonschema
from pydantic import ValidationError

from audiovr.audio.assets import AudioAsset, ResourceDescriptor
from audiovr.core.errors import AssetNotFoundError, InvalidAssetError

SCHEMA_PATH = Path(__file__).resolve().parent.parent / "schemas" / "audio_asset.schema.json"


def is_remote(location: str) -> bool:
    """True for http(s) locations that must be downloaded before loading."""
    return urlparse(location).scheme in ("http", "https")


class AssetRegistry:
    """
    Central store of audio asset metadata, keyed by asset id.
    """

    def __init__(self, cdn_base_url: str = ""):
        self.cdn_base_url = cdn_base_url
        self._assets: dict[str, AudioAsset] = {}
        self._schema: dict[str, Any] | None = None
        self.logger = logging.getLogger(__name__)

    def __contains__(self, asset_id: object) -> bool:
        return asset_id in self._assets

    def __len__(self) -> int:
        return len(self._assets)

    def __iter__(self) -> Iterator[AudioAsset]:
        return iter(self._assets.values())

    def register_asset(self, asset: AudioAsset | Mapping[str, Any]) -> AudioAsset:
        """
        Add or replace an asset by id.

        Raises:
            InvalidAssetError: missing id or source, or any field invalid
        """
        if not isinstance(asset, AudioAsset):
            if not isinstance(asset, Mapping):
                raise InvalidAssetError(f"Cannot register {type(asset).__name__} as an audio asset")
            try:
                asset = AudioAsset.model_validate(dict(asset))
            except ValidationError as e:
                raise InvalidAssetError(
                    f"Invalid audio asset '{asset.get('id', '?')}': {e.errors()[0]['msg']}",
                    {"errors": e.errors()},
                ) from e

        # model_construct() skips validation, so check the essentials again
        if not getattr(asset, "id", None):
            raise InvalidAssetError("Audio asset has no id")
        if not asset.url and not asset.local_path:
            raise InvalidAssetError(
                f"Audio asset '{asset.id}' has no url or local_path",
                {"asset_id": asset.id},
            )

        if asset.id in self._assets:
            self.logger.debug(f"Replacing audio asset {asset.id}")
        self._assets[asset.id] = asset
        return asset

    def unregister(self, asset_id: str) -> AudioAsset | None:
        return self._assets.pop(asset_id, None)

    def resolve(self, asset_id: str) -> AudioAsset:
        """
        Look up an asset.

        Raises:
            AssetNotFoundError: if the id was never registered
        """
        try:
            return self._assets[asset_id]
        except KeyError:
            raise AssetNotFoundError(asset_id) from None

    def get(self, asset_id: str) -> AudioAsset | None:
        return self._assets.get(asset_id)

    def assets(self) -> list[AudioAsset]:
        return list(self._assets.values())

    def descriptor(self, asset_id: str) -> ResourceDescriptor:
        """
        Resolve an asset id to something a loader can open.

        An existing local file wins over the url. Relative urls are
        resolved against the CDN base url.
        """
        asset = self.resolve(asset_id)

        if asset.local_path and Path(asset.local_path).exists():
            location = asset.local_path
        elif asset.url:
            location = self._absolute_url(asset.url)
        else:
            # local_path was declared but the file is missing; let the player report it
            location = asset.local_path

        return ResourceDescriptor(
            asset_id=asset.id,
            location=location,
            player=asset.player_kind,
            loop=asset.is_looping,
            remote=is_remote(location),
        )

    def _absolute_url(self, url: str) -> str:
        if is_remote(url) or not self.cdn_base_url:
            return url
        if urlparse(url).scheme:
            # file:// and friends
            return url
        return urljoin(self.cdn_base_url.rstrip("/") + "/", url.lstrip("/"))

    # Catalog loading

    def load_catalog(self, path: Path | str) -> int:
        """
        Register every valid asset in a JSON catalog file.

        The file holds either a list of assets or {"assets": [...]}.
        Invalid entries are logged and skipped.

        Returns:
            Number of assets registered
        """
        catalog_file = Path(path)
        if not catalog_file.exists():
            self.logger.warning(f"Audio catalog not found: {catalog_file}")
            return 0

        try:
            with open(catalog_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            self.logger.error(f"Failed to read audio catalog {catalog_file}: {e}")
            return 0

        entries = data.get("assets", []) if isinstance(data, dict) else data
        if not isinstance(entries, list):
            self.logger.error(f"Audio catalog {catalog_file} has no asset list")
            return 0

        schema = self._load_schema()
        count = 0
        for entry in entries:
            try:
                jsonschema.validate(instance=entry, schema=schema)
                self.register_asset(entry)
                count += 1
            except jsonschema.ValidationError as e:
                entry_id = entry.get("id", "?") if isinstance(entry, dict) else "?"
                self.logger.error(f"Validation error in {catalog_file} ({entry_id}): {e.message}")
            except InvalidAssetError as e:
                self.logger.error(f"Invalid asset in {catalog_file}: {e}")

        self.logger.info(f"Loaded {count} audio assets from {catalog_file}")
        return count

    def _load_schema(self) -> dict[str, Any]:
        if self._schema is None:
            with open(SCHEMA_PATH, "r", encoding="utf-8") as f:
                self._schema = json.load(f)
        return self._schema
