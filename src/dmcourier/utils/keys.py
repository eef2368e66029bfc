"""Nostr key and receiver address handling.

Loads the sender's secret key (nsec1 bech32 or 64-char hex) from a file or an
environment variable, and resolves the receiver address given on the command
line into a public key plus optional seed relays.

Warning:
    Private keys must **never** be logged. The functions here only ever log
    or raise with the file path or environment variable name, never the value.

Examples:
    ```python
    keys = load_keys_from_file("~/.nostr/sender.nsec")
    receiver = parse_receiver("nprofile1...")
    receiver.public_key.to_bech32()
    receiver.relays.urls
    ```
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from nostr_sdk import Keys, Nip19Profile, NostrSdkError, PublicKey

from dmcourier.models.candidates import RelayCandidateSet


logger = logging.getLogger("dmcourier.utils.keys")

ENV_SECRET_KEY = "DMCOURIER_SECRET_KEY"  # pragma: allowlist secret


def _parse_keys(value: str, source: str) -> Keys:
    value = value.strip()
    if not value:
        raise ValueError(f"{source} does not contain a secret key")
    try:
        return Keys.parse(value)
    except NostrSdkError as e:
        raise ValueError(f"{source} does not contain a valid secret key") from e


def load_keys_from_file(path: str | Path) -> Keys:
    """Load Nostr keys from a file holding a single secret key.

    Surrounding whitespace (including the trailing newline) is stripped.

    Raises:
        ValueError: If the file cannot be read, is empty, or does not hold
            a valid nsec1/hex secret key.
    """
    key_path = Path(path).expanduser()
    try:
        content = key_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ValueError(f"cannot read secret key file {key_path}: {e.strerror}") from e
    return _parse_keys(content, f"secret key file {key_path}")


def load_keys_from_env(env_var: str = ENV_SECRET_KEY) -> Keys:
    """Load Nostr keys from an environment variable.

    Raises:
        ValueError: If the variable is unset, empty, or not a valid secret key.
    """
    value = os.getenv(env_var)
    if not value:
        raise ValueError(f"{env_var} environment variable is required")
    return _parse_keys(value, f"{env_var} environment variable")


@dataclass(frozen=True, slots=True)
class Receiver:
    """A resolved receiver address.

    Attributes:
        public_key: The receiver identity.
        relays: Seed relays embedded in an ``nprofile`` address (empty for
            raw identities).
        is_profile: ``True`` if the address was a NIP-19 profile, which
            makes the courier discover the receiver's DM relays.
    """

    public_key: PublicKey
    relays: RelayCandidateSet = field(default_factory=RelayCandidateSet)
    is_profile: bool = False

    @property
    def hex(self) -> str:
        return self.public_key.to_hex()


def parse_receiver(value: str) -> Receiver:
    """Resolve a receiver address.

    Accepts a NIP-19 ``nprofile`` (public key plus relay hints), an ``npub``,
    or a 64-character hex public key. Profile relay hints that are not
    valid relay URLs are skipped with a warning.

    Raises:
        ValueError: If *value* is none of the accepted forms.
    """
    value = value.strip()

    if value.startswith("nprofile1"):
        try:
            profile = Nip19Profile.from_bech32(value)
        except NostrSdkError as e:
            raise ValueError(f"invalid nprofile: {e}") from e

        rejected: list[str] = []
        relays = RelayCandidateSet.from_urls(
            (str(url) for url in profile.relays()), rejected=rejected
        )
        for raw in rejected:
            logger.warning("profile_relay_invalid relay=%s", raw)
        return Receiver(profile.public_key(), relays, is_profile=True)

    try:
        public_key = PublicKey.parse(value)
    except NostrSdkError as e:
        raise ValueError(
            "receiver must be an nprofile, an npub, or a 64-character hex public key"
        ) from e
    return Receiver(public_key)
