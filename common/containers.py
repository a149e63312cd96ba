from dependency_injector import containers, providers

from common.config_watcher.manager import PollingConfigWatcher
from common.models import ConfigDomain, WatcherSettings
from common.settings import AppSettings
from config_provider.config_provider import ConfigProvider


class AgentContainer(containers.DeclarativeContainer):
    config = providers.Configuration(
        default={
            "conf_dir": None,
            "watcher": {
                "interval_seconds": 3.0,
                "fingerprint": "stat",
                "use_notifications": False,
            },
        }
    )

    settings = providers.Singleton(AppSettings, conf_dir=config.conf_dir)

    watcher_settings = providers.Singleton(WatcherSettings.model_validate, config.watcher)

    pipeline_watcher = providers.Singleton(
        PollingConfigWatcher,
        domain=ConfigDomain.PIPELINE,
        settings=watcher_settings,
    )

    instance_watcher = providers.Singleton(
        PollingConfigWatcher,
        domain=ConfigDomain.INSTANCE,
        settings=watcher_settings,
    )

    config_provider = providers.Singleton(
        ConfigProvider,
        settings=settings,
        pipeline_watcher=pipeline_watcher,
        instance_watcher=instance_watcher,
    )
