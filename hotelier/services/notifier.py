"""
Fire-and-forget UDP multicast publisher for ranking changes.
"""

from __future__ import annotations

import socket
from typing import Callable, Optional

from hotelier.utils.logging import get_logger

log = get_logger(__name__)


class NotificationPublisher:
    """Sends UTF-8 text datagrams to a multicast group; never raises on send."""

    def __init__(
        self,
        group: str,
        port: int,
        ttl: int = 1,
        socket_factory: Optional[Callable[[], socket.socket]] = None,
    ) -> None:
        self.group = group
        self.port = port
        self.ttl = ttl
        self._socket_factory = socket_factory or self._multicast_socket

    def _multicast_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, self.ttl)
        return sock

    def publish(self, message: str) -> bool:
        if not message:
            return False
        payload = message.encode("utf-8")
        try:
            with self._socket_factory() as sock:
                sock.sendto(payload, (self.group, self.port))
        except OSError:
            log.exception(
                "Failed to publish ranking notification",
                extra={"group": self.group, "port": self.port},
            )
            return False
        log.info(
            "Ranking notification published",
            extra={"group": self.group, "port": self.port, "bytes": len(payload)},
        )
        return True


__all__ = ["NotificationPublisher"]
