from learnhub.storage.kv import MemoryKeyValueStore
from learnhub.storage.negotiation import StorageBackends, build_local


def memory_backends(seed: bool = False) -> StorageBackends:
    """Local backends over a throwaway in-memory store."""
    return build_local(MemoryKeyValueStore(), "learnhub", seed=seed)

TEST_PASSWORD = "testpass123"
