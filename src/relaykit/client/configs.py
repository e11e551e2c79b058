"""Client configuration models.

See Also:
    [Client.from_yaml()][relaykit.client.client.Client.from_yaml]: Builds a
        client from a YAML file matching
        [ClientConfig][relaykit.client.configs.ClientConfig].
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from relaykit.core.pool import RelayPoolConfig
from relaykit.utils.keys import ENV_PRIVATE_KEY


class RelayConfig(BaseModel):
    """A relay to add on [bootstrap()][relaykit.client.client.Client.bootstrap]."""

    url: str = Field(min_length=1, description="ws:// or wss:// relay URL")
    proxy: str | None = Field(default=None, description="SOCKS5 proxy URL for this relay")


class ClientConfig(BaseModel):
    """Configuration for [Client][relaykit.client.client.Client].

    Example YAML:

    ```yaml
    keys_env: PRIVATE_KEY
    pool:
      notification_capacity: 1024
      connect_timeout: 5.0
    relays:
      - url: wss://relay.damus.io
      - url: ws://abc123.onion
        proxy: socks5://127.0.0.1:9050
    ```
    """

    keys_env: str = Field(
        default=ENV_PRIVATE_KEY,
        min_length=1,
        description="Environment variable holding the private key",
    )
    pool: RelayPoolConfig = Field(default_factory=RelayPoolConfig)
    relays: list[RelayConfig] = Field(default_factory=list)

    @field_validator("relays")
    @classmethod
    def _unique_relays(cls, v: list[RelayConfig]) -> list[RelayConfig]:
        urls = [relay.url for relay in v]
        duplicates = sorted({url for url in urls if urls.count(url) > 1})
        if duplicates:
            raise ValueError(f"duplicate relay urls: {', '.join(duplicates)}")
        return v
