"""TCP reachability primitives used by the liveness prober.

A probe opens a plain TCP connection to the relay's host and port and closes
it immediately, without any TLS or WebSocket handshake. Overlay relays
(Tor, I2P, Lokinet) cannot be resolved directly, so they are probed through
the network's SOCKS5 proxy with ``python-socks``.

Examples:
    ```python
    await probe_tcp("relay.example.com", 443, timeout=1.0)
    await probe_via_proxy("socks5://127.0.0.1:9050", "abc.onion", 80, timeout=10.0)
    ```
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Final

from python_socks import ProxyError, ProxyTimeoutError
from python_socks.async_.asyncio import Proxy


DEFAULT_PROBE_TIMEOUT: Final[float] = 1.0


logger = logging.getLogger("dmcourier.utils.transport")


async def probe_tcp(host: str, port: int, timeout: float = DEFAULT_PROBE_TIMEOUT) -> None:  # noqa: ASYNC109
    """Open and immediately close a TCP connection to ``host:port``.

    The timeout bounds name resolution and the connection handshake together.

    Raises:
        TimeoutError: If no connection was established within *timeout*.
        OSError: If resolution failed or the connection was refused.
    """
    async with asyncio.timeout(timeout):
        _reader, writer = await asyncio.open_connection(host, port)
    writer.close()
    # The peer may reset the connection while we close; reachability is already proven.
    with contextlib.suppress(OSError):
        await writer.wait_closed()
    logger.debug("tcp_probe_ok host=%s port=%s", host, port)


async def probe_via_proxy(
    proxy_url: str,
    host: str,
    port: int,
    timeout: float = DEFAULT_PROBE_TIMEOUT,  # noqa: ASYNC109
) -> None:
    """Open and immediately close a TCP connection through a SOCKS5 proxy.

    Raises:
        TimeoutError: If no connection was established within *timeout*.
        OSError: If the proxy was unreachable or refused the destination.
    """
    proxy = Proxy.from_url(proxy_url, rdns=True)
    try:
        async with asyncio.timeout(timeout):
            sock = await proxy.connect(dest_host=host, dest_port=port)
    except ProxyTimeoutError as e:
        raise TimeoutError(str(e)) from e
    except ProxyError as e:
        raise OSError(f"proxy refused {host}:{port}: {e}") from e
    sock.close()
    logger.debug("proxy_probe_ok host=%s port=%s proxy=%s", host, port, proxy_url)
