from .base import MissingCredentialsError, ProviderConfig, ProviderError, UpstreamStream

__all__ = [
    "MissingCredentialsError",
    "ProviderConfig",
    "ProviderError",
    "UpstreamStream",
]
