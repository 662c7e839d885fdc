from tests.fakes.fake_identity_store import FakeIdentityStore
from tests.fakes.slow_edge_store import SlowEdgeStore

__all__ = ["FakeIdentityStore", "SlowEdgeStore"]
