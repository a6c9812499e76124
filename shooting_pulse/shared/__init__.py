from shooting_pulse.shared.config import Settings, get_config, get_dataset_config, reload_config

__all__ = [
    "get_config",
    "get_dataset_config",
    "reload_config",
    "Settings",
]
