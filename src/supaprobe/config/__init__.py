from supaprobe.config.settings import ProbeConfig, get_config, load_environment

__all__ = ["ProbeConfig", "get_config", "load_environment"]
