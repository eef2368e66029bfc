"""Nostr keys, relay network client, and TCP reachability probes.

The utils layer depends on [dmcourier.models][dmcourier.models] and on the
exception types of [dmcourier.core.exceptions][dmcourier.core.exceptions]
only. It provides the network capabilities consumed by
[dmcourier.services][dmcourier.services].

Attributes:
    keys: Secret key loading (file or environment variable) and receiver
        address resolution (nprofile, npub, hex).
    protocol: Relay network client interfaces and their ``nostr-sdk``
        implementation, including the shared notification channel.
    transport: Bounded TCP connection probes, direct or through SOCKS5.
"""
