"""Exceptions raised by the gateway core."""

from __future__ import annotations

from typing import Optional

from .models import PackageIdentity, Repository


class GatewayError(Exception):
    """Base class for gateway failures."""


class UpstreamError(GatewayError):
    """A query against one upstream repository failed."""

    def __init__(self, repository: Repository, message: str):
        super().__init__(f"{repository}: {message}")
        self.repository = repository
        self.message = message


class TransportError(UpstreamError):
    """The upstream request could not be completed.

    Covers connection failures, timeouts and non-success HTTP statuses.
    """

    def __init__(self, repository: Repository, message: str, status: Optional[int] = None):
        super().__init__(repository, message)
        self.status = status


class DecodeError(UpstreamError):
    """The upstream response body did not match the dependency schema."""


class NotFoundError(GatewayError):
    """No repository is known to hold the requested gem."""

    def __init__(self, identity: "PackageIdentity | str"):
        super().__init__(f"{identity} not found")
        self.identity = str(identity)
