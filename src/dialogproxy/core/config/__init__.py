from .settings import ProxyConfig

__all__ = ["ProxyConfig"]
