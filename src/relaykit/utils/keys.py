"""Nostr identity helpers.

Generates, copies and loads ``nostr_sdk.Keys``. Private keys are read from
environment variables only, never from configuration files.

Warning:
    Never log or serialize the returned ``Keys``; they hold the private key
    in memory for the lifetime of the object.

Examples:
    ```python
    import os

    os.environ["PRIVATE_KEY"] = "nsec1..."  # pragma: allowlist secret
    keys = load_keys_from_env("PRIVATE_KEY")
    print(keys.public_key().to_bech32())
    ```
"""

from __future__ import annotations

import os
from nostr_sdk import Keys


ENV_PRIVATE_KEY = "PRIVATE_KEY"  # pragma: allowlist secret  # Default env var name


def generate_keys() -> Keys:
    """Generate a fresh keypair from the operating system CSPRNG."""
    return Keys.generate()


def clone_keys(keys: Keys) -> Keys:
    """Return an independent ``Keys`` holding the same secret key."""
    return Keys(keys.secret_key())


def load_keys_from_env(env_var: str = ENV_PRIVATE_KEY) -> Keys:
    """Load keys from an environment variable (nsec1 bech32 or 64-char hex).

    Raises:
        ValueError: If the variable is unset or empty.
        nostr_sdk.NostrSdkError: If the value is not a valid secret key.
    """
    value = os.getenv(env_var)

    if not value:
        raise ValueError(
            f"{env_var} environment variable is required. Generate one with: openssl rand -hex 32"
        )

    return Keys.parse(value)

