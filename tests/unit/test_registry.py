"""
Unit tests for the resource registry and routing.
"""

import pytest

from httptestserver.errors import ConfigurationError
from httptestserver.http.status_codes import Method, Status
from httptestserver.registry import ResourceRegistry


@pytest.fixture
def registry() -> ResourceRegistry:
    return ResourceRegistry()


class TestResourceRegistry:
    """Tests for ResourceRegistry."""

    def test_create(self, registry: ResourceRegistry):
        """Test that created resources are kept in order."""
        first = registry.create("/a")
        second = registry.create("/b")

        assert len(registry) == 2
        assert registry.resources == [first, second]

    def test_create_malformed(self, registry: ResourceRegistry):
        """Test that a bad pattern is not registered."""
        with pytest.raises(ConfigurationError):
            registry.create("/users/(")

        assert len(registry) == 0

    def test_resolve_routed(self, registry: ResourceRegistry):
        """Test a request that reaches a resource."""
        resource = registry.create("/users")

        match = registry.resolve("GET", "/users")

        assert match.routed
        assert match.resource is resource
        assert resource.request_count() == 1

    def test_resolve_not_found(self, registry: ResourceRegistry):
        """Test a request that matches no URI."""
        resource = registry.create("/users")

        match = registry.resolve("GET", "/posts")

        assert not match.routed
        assert match.status is Status.NOT_FOUND
        assert match.render("/posts") == "HTTP/1.1 404 Not Found\r\n\r\n"
        assert resource.request_count() == 0

    def test_resolve_method_not_allowed(self, registry: ResourceRegistry):
        """Test a request whose URI matches but method doesn't."""
        resource = registry.create("/users")

        match = registry.resolve("DELETE", "/users")

        assert match.status is Status.METHOD_NOT_ALLOWED
        assert match.render("/users") == "HTTP/1.1 405 Method Not Allowed\r\n\r\n"
        assert resource.request_count() == 0

    def test_resolve_picks_method(self, registry: ResourceRegistry):
        """Test several resources on one URI with different methods."""
        get = registry.create("/users")
        post = registry.create("/users").method(Method.POST)

        assert registry.resolve("POST", "/users").resource is post
        assert registry.resolve("GET", "/users").resource is get
        assert get.request_count() == 1
        assert post.request_count() == 1

    def test_resolve_first_registered_wins(self, registry: ResourceRegistry):
        """Test duplicate registrations."""
        first = registry.create("/user/{id}")
        registry.create("/user/[0-9]+")

        assert registry.resolve("GET", "/user/1").resource is first

    def test_resolve_query_constraint(self, registry: ResourceRegistry):
        """Test that a failed query constraint means 404."""
        registry.create("/user/{id}?filter=*")

        assert registry.resolve("GET", "/user/1?filter=all").routed
        assert registry.resolve("GET", "/user/1").status is Status.NOT_FOUND

    def test_route_match_renders_resource(self, registry: ResourceRegistry):
        """Test that a routed match renders its resource."""
        registry.create("/user/{id}").body("id={path.id}")

        match = registry.resolve("GET", "/user/7")

        assert match.render("/user/7") == "HTTP/1.1 200 Ok\r\n\r\nid=7"
