from mediauth.config.settings import Settings

__all__ = ["Settings"]
