"""gemgate gateway package.

Presents several prioritized upstream gem repositories as a single
repository: dependency queries are fanned out and merged by priority, and
gem downloads are redirected to the repository that supplied the gem.
"""

from .models import Repository, PackageIdentity, DependencyEdge, PackageRecord
from .errors import GatewayError, UpstreamError, TransportError, DecodeError, NotFoundError
from .directory import GemDirectory
from .upstream import UpstreamClient
from .aggregator import Aggregator, merge_dependencies
from .server import GemGatewayServer, GatewayConfig

__all__ = [
    "Repository",
    "PackageIdentity",
    "DependencyEdge",
    "PackageRecord",
    "GatewayError",
    "UpstreamError",
    "TransportError",
    "DecodeError",
    "NotFoundError",
    "GemDirectory",
    "UpstreamClient",
    "Aggregator",
    "merge_dependencies",
    "GemGatewayServer",
    "GatewayConfig",
]
