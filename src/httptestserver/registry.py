"""
=============================================================================
RESOURCE REGISTRY
=============================================================================

Ordered list of the resources created on one server, and the routing rule
that picks which one answers a request.

=============================================================================
ROUTING
=============================================================================

    Incoming: POST /user/42?filter=all

    ┌─────────────────────────────────────────────────────────────────────┐
    │  STEP 1: which resources match the path + query? (method ignored)   │
    │                                                                      │
    │     GET  /user/{id}?filter=*    ✓                                    │
    │     POST /user/{id}?filter=*    ✓                                    │
    │     GET  /posts                 ✗                                    │
    │                                                                      │
    │     none  → 404 Not Found                                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │  STEP 2: among those, the first registered with method == POST      │
    │                                                                      │
    │     found → request_count += 1, render it                            │
    │     none  → 405 Method Not Allowed                                   │
    └─────────────────────────────────────────────────────────────────────┘

If two resources match both path and method, the one registered first wins.
Tests should avoid registering such duplicates.

=============================================================================
"""

import threading
from dataclasses import dataclass
from typing import List, Optional

from .http.status_codes import Status
from .resource import Resource, status_response


@dataclass
class RouteMatch:
    """
    Outcome of resolving a request.

    Either `resource` is set (the request was routed), or `status` says why
    it wasn't (404 or 405).
    """

    resource: Optional[Resource] = None
    status: Optional[Status] = None

    @property
    def routed(self) -> bool:
        return self.resource is not None

    def render(self, target: str) -> str:
        if self.resource is not None:
            return self.resource.render(target)
        return status_response(self.status)


class ResourceRegistry:
    """Thread-safe, ordered collection of resources."""

    def __init__(self):
        self._resources: List[Resource] = []
        self._lock = threading.Lock()  # Protects _resources

    def __len__(self) -> int:
        with self._lock:
            return len(self._resources)

    def create(self, uri: str) -> Resource:
        """
        Create a resource and register it.

        Raises:
            ConfigurationError: If the URI pattern is malformed.
        """
        resource = Resource(uri)
        with self._lock:
            self._resources.append(resource)
        return resource

    @property
    def resources(self) -> List[Resource]:
        """Snapshot of registered resources, in registration order."""
        with self._lock:
            return list(self._resources)

    def resolve(self, method: str, target: str) -> RouteMatch:
        """
        Find the resource for (method, target), counting the request.

        The counter is incremented inside the same critical section that
        picked the resource.
        """
        with self._lock:
            candidates = [r for r in self._resources if r.matches_uri(target)]

            if not candidates:
                return RouteMatch(status=Status.NOT_FOUND)

            for resource in candidates:
                if resource.get_method().equal(method):
                    resource.increment_request_count()
                    return RouteMatch(resource=resource)

            return RouteMatch(status=Status.METHOD_NOT_ALLOWED)
