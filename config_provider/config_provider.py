from pathlib import Path, PurePath
from typing import Optional

from common.config_watcher.base import BaseConfigWatcher
from common.models import ConfigDomain
from common.settings import AppSettings
from common.utils import logger


class ConfigProvider:
    """Locates the pipeline and instance config directories and hands them to their watchers.

    Each domain is handled independently: a directory that cannot be created,
    or a registration that fails, is logged and leaves that domain with an
    empty config set without stopping the other one.
    """

    def __init__(
        self,
        settings: AppSettings,
        pipeline_watcher: BaseConfigWatcher,
        instance_watcher: BaseConfigWatcher,
    ) -> None:
        self.settings = settings
        self._watchers = {
            ConfigDomain.PIPELINE: pipeline_watcher,
            ConfigDomain.INSTANCE: instance_watcher,
        }
        self._source_dirs: dict[ConfigDomain, Path] = {}

    @property
    def pipeline_source_dir(self) -> Optional[Path]:
        return self._source_dirs.get(ConfigDomain.PIPELINE)

    @property
    def instance_source_dir(self) -> Optional[Path]:
        return self._source_dirs.get(ConfigDomain.INSTANCE)

    def source_dir(self, domain: ConfigDomain) -> Optional[Path]:
        return self._source_dirs.get(domain)

    def watcher(self, domain: ConfigDomain) -> BaseConfigWatcher:
        return self._watchers[domain]

    def initialize(self, suffix: str) -> bool:
        """Create and register ``<conf_dir>/<domain>_config/<suffix>`` for both domains.

        Args:
            suffix (str): Relative discriminator appended to each domain directory,
                e.g. an environment or tenant name.

        Returns:
            bool: True if both directories were registered with their watchers.
                False if the suffix is absolute or escapes the domain directory, in
                which case nothing is registered.
        """
        suffix_path = PurePath(suffix)
        if suffix_path.is_absolute() or ".." in suffix_path.parts:
            logger.warning(f"Rejecting config dir suffix {suffix!r}: it must be a relative path below the config root")
            return False

        conf_dir = self.settings.get_conf_dir()
        registered = True
        for domain, watcher in self._watchers.items():
            source_dir = conf_dir / domain.dir_name / suffix
            self._source_dirs[domain] = source_dir
            self._ensure_directory(domain, source_dir)
            try:
                watcher.add_source(source_dir)
            except Exception as e:
                logger.error(f"Failed to register {domain.value} config dir {source_dir}: {e}")
                registered = False
        return registered

    @staticmethod
    def _ensure_directory(domain: ConfigDomain, path: Path) -> None:
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(
                f"Cannot create {domain.value} config dir {path}, "
                f"its config set stays empty until it exists: {e}"
            )
