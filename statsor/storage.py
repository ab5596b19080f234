import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import StoreUnavailableError

logger = logging.getLogger(__name__)

# Envelope version written with every collection
SCHEMA_VERSION = 1

_KEY_PATTERN = re.compile(r'^[A-Za-z0-9][A-Za-z0-9._-]*$')


def validate_key(key: str) -> str:
    """Collection keys double as file names, so keep them to a safe alphabet"""
    if not isinstance(key, str) or not _KEY_PATTERN.match(key):
        raise ValueError(f"Invalid collection key: {key!r}")
    return key


def _encode(items: List[Any]) -> str:
    if not isinstance(items, list):
        raise TypeError("Collections must be lists")
    return json.dumps({'version': SCHEMA_VERSION, 'items': items}, indent=2, ensure_ascii=False)


def _decode(key: str, raw: str) -> List[Any]:
    """Parse a stored collection; corrupted data degrades to an empty list"""
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(f"Collection '{key}' is corrupted, treating as empty: {e}")
        return []

    # Legacy shape: a bare list
    if isinstance(data, list):
        return data

    if isinstance(data, dict) and isinstance(data.get('items'), list):
        version = data.get('version')
        if version != SCHEMA_VERSION:
            logger.warning(f"Collection '{key}' has schema version {version!r}, expected {SCHEMA_VERSION}")
        return data['items']

    logger.warning(f"Collection '{key}' has an unexpected shape, treating as empty")
    return []


class Store:
    """Key-value store of JSON-serializable collections"""

    def load(self, key: str) -> Optional[List[Any]]:
        """Return the collection stored under key, or None if absent"""
        raise NotImplementedError

    def save(self, key: str, items: List[Any]) -> None:
        """Replace the collection under key; raises StoreUnavailableError"""
        self.save_many({key: items})

    def save_many(self, collections: Dict[str, List[Any]]) -> None:
        """Replace several collections; either all are written or none is"""
        raise NotImplementedError

    def delete(self, key: str) -> bool:
        raise NotImplementedError

    def load_list(self, key: str) -> List[Any]:
        """Like load(), but an absent collection is an empty list"""
        items = self.load(key)
        return items if items is not None else []


class MemoryStore(Store):
    """In-process store with the same JSON round-trip semantics as the file store"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def load(self, key: str) -> Optional[List[Any]]:
        validate_key(key)
        raw = self._data.get(key)
        if raw is None:
            return None
        return _decode(key, raw)

    def save_many(self, collections: Dict[str, List[Any]]) -> None:
        try:
            encoded = {validate_key(key): _encode(items) for key, items in collections.items()}
        except (TypeError, ValueError) as e:
            raise StoreUnavailableError(f"Failed to save collections: {e}")
        self._data.update(encoded)

    def delete(self, key: str) -> bool:
        validate_key(key)
        return self._data.pop(key, None) is not None

    def raw(self, key: str) -> Optional[str]:
        return self._data.get(key)


class JsonFileStore(Store):
    """One <key>.json file per collection under a data directory"""

    def __init__(self, data_dir: str = "data"):
        self.data_dir = Path(data_dir)

        # Ensure data directory exists
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        return self.data_dir / f"{validate_key(key)}.json"

    def load(self, key: str) -> Optional[List[Any]]:
        path = self.path_for(key)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                raw = f.read()
        except FileNotFoundError:
            return None
        except (IOError, OSError, UnicodeDecodeError) as e:
            logger.error(f"Failed to read collection '{key}', treating as empty: {e}")
            return []
        return _decode(key, raw)

    def save_many(self, collections: Dict[str, List[Any]]) -> None:
        try:
            encoded = {self.path_for(key): _encode(items) for key, items in collections.items()}
        except (TypeError, ValueError) as e:
            raise StoreUnavailableError(f"Failed to save collections: {e}")

        written = []
        replaced = []
        try:
            # Current contents, restored if a later replace fails
            originals = {path: self._read_bytes(path) for path in encoded}

            # Write every temp file before replacing anything
            for path, payload in encoded.items():
                tmp_path = path.with_name(path.name + '.tmp')
                written.append(tmp_path)
                with open(tmp_path, 'w', encoding='utf-8') as f:
                    f.write(payload)

            for tmp_path, path in zip(written, encoded):
                os.replace(tmp_path, path)
                replaced.append(path)
        except (IOError, OSError) as e:
            logger.error(f"Failed to save collections {sorted(collections)}: {e}")
            if replaced:
                self._restore(replaced, originals)
            raise StoreUnavailableError(f"Failed to save collections: {str(e)}")
        finally:
            for tmp_path in written:
                try:
                    tmp_path.unlink(missing_ok=True)
                except OSError as e:
                    logger.warning(f"Could not remove temp file {tmp_path}: {e}")

    @staticmethod
    def _read_bytes(path: Path) -> Optional[bytes]:
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    def _restore(self, paths: List[Path], originals: Dict[Path, Optional[bytes]]) -> None:
        """Put back the previous contents of already replaced files"""
        for path in paths:
            original = originals[path]
            try:
                if original is None:
                    path.unlink(missing_ok=True)
                else:
                    path.write_bytes(original)
            except OSError as e:
                logger.error(f"Failed to restore {path.name} after a partial save: {e}")

    def delete(self, key: str) -> bool:
        path = self.path_for(key)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StoreUnavailableError(f"Failed to delete collection '{key}': {str(e)}")
