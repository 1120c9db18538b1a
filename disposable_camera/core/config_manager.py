"""Reading and writing of ``key = value`` config files."""

import asyncio
import errno
import hashlib
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List

import aiofiles

from .logging_utils import get_module_logger
from .paths import PROJECT_ROOT, USER_CONFIG_OVERRIDES_DIR


logger = get_module_logger("ConfigManager")


class ConfigManager:

    def __init__(self):
        self.logger = get_module_logger("ConfigManager")
        self.lock = asyncio.Lock()
        try:
            self._project_root = PROJECT_ROOT.resolve()
        except OSError:  # pragma: no cover - unresolvable checkout
            self._project_root = PROJECT_ROOT

    # ------------------------------------------------------------------
    # Internal helpers

    @staticmethod
    def _stringify_value(value: Any) -> str:
        if isinstance(value, bool):
            return str(value).lower()
        text = " ".join(str(value).splitlines())
        # Quote values the parser would otherwise truncate or unwrap
        if ' #' in text or text[:1] in ('"', "'"):
            return f'"{text}"'
        return text

    def _parse_config_lines(self, lines: Iterable[str]) -> Dict[str, str]:
        config: Dict[str, str] = {}

        for raw_line in lines:
            line = raw_line.strip()
            if not line or line.startswith('#'):
                continue
            if '=' not in line:
                continue

            key, value = line.split('=', 1)
            key = key.strip()
            value = value.strip()

            if (value.startswith('"') and value.endswith('"')) or (value.startswith("'") and value.endswith("'")):
                value = value[1:-1]
            elif ' #' in value:
                value = value.split(' #')[0].strip()

            config[key] = value

        return config

    def _merge_lines(self, lines: List[str], updates: Dict[str, Any]) -> List[str]:
        updated_keys = set()

        for i, line in enumerate(lines):
            stripped = line.strip()
            if not stripped or stripped.startswith('#'):
                continue

            if '=' in stripped:
                key = stripped.split('=')[0].strip()
                if key in updates:
                    value_str = self._stringify_value(updates[key])
                    indent = len(line) - len(line.lstrip())
                    lines[i] = ' ' * indent + f"{key} = {value_str}\n"
                    updated_keys.add(key)

        for key, value in updates.items():
            if key not in updated_keys:
                value_str = self._stringify_value(value)
                if lines and not lines[-1].endswith("\n"):
                    lines[-1] += "\n"
                lines.append(f"{key} = {value_str}\n")
                logger.debug("Added new config key: %s = %s", key, value_str)

        return lines

    def _resolve_override_path(self, config_path: Path) -> Path:
        try:
            rel_path = config_path.resolve().relative_to(self._project_root)
        except ValueError:
            digest = hashlib.sha1(str(config_path).encode('utf-8')).hexdigest()[:10]
            safe_name = re.sub(r'[^a-zA-Z0-9._-]+', '_', config_path.stem or 'config')
            rel_path = Path('external') / f"{safe_name}_{digest}{config_path.suffix or '.txt'}"
        return USER_CONFIG_OVERRIDES_DIR / rel_path

    def _load_override_sync(self, config_path: Path) -> Dict[str, str]:
        override_path = self._resolve_override_path(config_path)
        if not override_path.exists():
            return {}

        try:
            with open(override_path, 'r', encoding='utf-8') as fh:
                return self._parse_config_lines(fh)
        except OSError as exc:
            logger.warning("Failed to read override config %s: %s", override_path, exc)
            return {}

    def _write_override_sync(self, config_path: Path, updates: Dict[str, Any]) -> bool:
        if not updates:
            return True

        override_path = self._resolve_override_path(config_path)
        try:
            existing = self._load_override_sync(config_path)
            for key, value in updates.items():
                existing[key] = self._stringify_value(value)

            override_path.parent.mkdir(parents=True, exist_ok=True)
            with open(override_path, 'w', encoding='utf-8') as fh:
                for key in sorted(existing.keys()):
                    fh.write(f"{key} = {existing[key]}\n")

            logger.debug("Stored config overrides in %s", override_path)
            return True
        except OSError as exc:
            logger.error("Failed to write config override %s: %s", override_path, exc)
            return False

    def _clear_override(self, config_path: Path) -> None:
        override_path = self._resolve_override_path(config_path)
        try:
            override_path.unlink(missing_ok=True)
        except OSError:
            return

    @staticmethod
    def _is_read_only_error(exc: OSError) -> bool:
        return isinstance(exc, PermissionError) or exc.errno in (errno.EACCES, errno.EROFS)

    # ------------------------------------------------------------------
    # Public API

    def read_config(self, config_path: Path) -> Dict[str, str]:
        """Read ``config_path`` merged with any user override file."""
        config: Dict[str, str] = {}

        if config_path.exists():
            try:
                with open(config_path, 'r', encoding='utf-8') as f:
                    config = self._parse_config_lines(f)
            except OSError as e:
                logger.error("Failed to read config %s: %s", config_path, e)

        overrides = self._load_override_sync(config_path)
        if overrides:
            config.update(overrides)

        return config

    async def read_config_async(self, config_path: Path) -> Dict[str, str]:
        """Async version for use in async contexts."""
        config: Dict[str, str] = {}

        if await asyncio.to_thread(config_path.exists):
            try:
                lines: list[str] = []
                async with aiofiles.open(config_path, 'r', encoding='utf-8') as f:
                    async for line in f:
                        lines.append(line)
                config = self._parse_config_lines(lines)
            except OSError as e:
                logger.error("Failed to read config %s: %s", config_path, e)

        overrides = await asyncio.to_thread(self._load_override_sync, config_path)
        if overrides:
            config.update(overrides)

        return config

    def write_config(self, config_path: Path, updates: Dict[str, Any]) -> bool:
        """Merge ``updates`` into ``config_path``, creating the file when missing."""
        try:
            lines: List[str] = []
            if config_path.exists():
                with open(config_path, 'r', encoding='utf-8') as f:
                    lines = f.readlines()
            else:
                config_path.parent.mkdir(parents=True, exist_ok=True)

            lines = self._merge_lines(lines, updates)

            with open(config_path, 'w', encoding='utf-8') as f:
                f.writelines(lines)

            self._clear_override(config_path)
            return True

        except OSError as e:
            if self._is_read_only_error(e):
                logger.warning(
                    "Config %s is not writable (%s). Falling back to override file",
                    config_path,
                    e,
                )
                return self._write_override_sync(config_path, updates)
            logger.error("Failed to write config %s: %s", config_path, e, exc_info=True)
            return False

    async def write_config_async(self, config_path: Path, updates: Dict[str, Any]) -> bool:
        """Async version for use in async contexts."""
        async with self.lock:
            try:
                lines: List[str] = []
                if await asyncio.to_thread(config_path.exists):
                    async with aiofiles.open(config_path, 'r', encoding='utf-8') as f:
                        lines = await f.readlines()
                else:
                    await asyncio.to_thread(config_path.parent.mkdir, parents=True, exist_ok=True)

                lines = self._merge_lines(lines, updates)

                async with aiofiles.open(config_path, 'w', encoding='utf-8') as f:
                    await f.writelines(lines)

                await asyncio.to_thread(self._clear_override, config_path)
                return True

            except OSError as e:
                if self._is_read_only_error(e):
                    logger.warning(
                        "Config %s is not writable (%s). Falling back to override file",
                        config_path,
                        e,
                    )
                    return await asyncio.to_thread(self._write_override_sync, config_path, updates)
                logger.error("Failed to write config %s: %s", config_path, e, exc_info=True)
                return False

    def remove_keys(self, config_path: Path, keys: Iterable[str]) -> bool:
        """Strip ``keys`` from the config file and its override, keeping comments intact."""
        key_set = set(keys)
        if not key_set:
            return True

        for path in (config_path, self._resolve_override_path(config_path)):
            if not path.exists():
                continue
            try:
                lines = path.read_text(encoding="utf-8").splitlines()
                filtered: list[str] = []
                for line in lines:
                    stripped = line.strip()
                    if stripped and not stripped.startswith('#') and '=' in stripped:
                        if stripped.split('=', 1)[0].strip() in key_set:
                            continue
                    filtered.append(line)
                path.write_text("\n".join(filtered) + "\n", encoding="utf-8")
            except OSError as e:
                logger.error("Failed to remove keys from %s: %s", path, e)
                return False
        return True


_config_manager = ConfigManager()


def get_config_manager() -> ConfigManager:
    return _config_manager


__all__ = ["ConfigManager", "get_config_manager"]
