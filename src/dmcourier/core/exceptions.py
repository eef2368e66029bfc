"""dmcourier exception hierarchy.

Separates errors that abort an invocation before any network activity from
errors raised by the final publish step. Discovery and probing never raise
transport errors: they log and skip the affected relay.

Exception hierarchy:

```text
DmCourierError (base -- never raised directly)
├── ConfigurationError        -- flags, keys, receiver address, empty seed set
├── ConnectivityError         -- relay/network failures surfaced to the caller
│   └── NoLiveRelaysError     -- every candidate failed the liveness probe
├── NotificationChannelError  -- the shared notification stream is closed
└── PublishingError           -- the message could not be published
```

See Also:
    [Courier][dmcourier.services.courier.Courier]: Raises
        [ConfigurationError][dmcourier.core.exceptions.ConfigurationError]
        and propagates
        [NoLiveRelaysError][dmcourier.core.exceptions.NoLiveRelaysError].
    [DeliveryCoordinator][dmcourier.services.delivery.DeliveryCoordinator]:
        Raises [PublishingError][dmcourier.core.exceptions.PublishingError]
        and absorbs
        [NotificationChannelError][dmcourier.core.exceptions.NotificationChannelError]
        into the outcome.
"""

from __future__ import annotations


class DmCourierError(Exception):
    """Base exception for all dmcourier errors.

    Never raised directly -- always use a specific subclass.
    """


class ConfigurationError(DmCourierError):
    """Invalid or missing configuration (YAML, secret key, CLI flags, receiver).

    Always raised before any network activity.
    """


class ConnectivityError(DmCourierError):
    """Base for relay/network connectivity errors surfaced to the caller."""


class NoLiveRelaysError(ConnectivityError):
    """No candidate relay accepted a connection during liveness probing.

    A total failure: the caller may retry with different relays.

    Attributes:
        candidates: URLs that were probed.
    """

    def __init__(self, candidates: list[str]) -> None:
        self.candidates = candidates
        super().__init__(f"no reachable relay among {len(candidates)} candidates")


class NotificationChannelError(DmCourierError):
    """The relay notification stream was closed or broke.

    Distinct from a receive timeout: a timeout means "no message yet", this
    error means no further message can arrive.
    """


class PublishingError(DmCourierError):
    """Failed to publish the message to the live relays."""
