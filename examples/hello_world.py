"""
envelope_kv — Hello World

Every value is an envelope. Plugins chain in registration order,
transforming the context as they go. A raising plugin vetoes the call.
"""

from envelope_kv import AccessDeniedError, StorageEngine
from envelope_kv.logging_config import configure_logging
from envelope_kv.plugins import AccessControlPlugin, CompressionPlugin, CustomPlugin
from envelope_kv.substrates import InMemorySubstrate


def log_change(key, value, *old):
    print(f"  [CHANGE] {key} -> {value!r}")


def main():
    configure_logging()

    # ──────────────────────────────────────
    #  1. Create the engine
    # ──────────────────────────────────────
    substrate = InMemorySubstrate()
    store = StorageEngine(substrate, "app", default_ttl=3600, encryption_key="demo-secret")

    # ──────────────────────────────────────
    #  2. Register plugins (order = chain order)
    # ──────────────────────────────────────
    store.use(AccessControlPlugin(default_role="user"))
    store.use(CompressionPlugin(min_size=64))
    store.use(CustomPlugin(name="audit", events={"change": log_change}))

    # ──────────────────────────────────────
    #  3. Plain reads and writes
    # ──────────────────────────────────────
    print("=== Writes ===\n")
    store.set("user", {"name": "alice", "roles": {"admin", "dev"}})
    store.set("notes", "the quick brown fox jumps over the lazy dog " * 4)
    print(f"\n  user  = {store.get('user')}")
    print(f"  stored text starts with {substrate.get_item('app:user')[:12]!r}")

    # ──────────────────────────────────────
    #  4. Helpers
    # ──────────────────────────────────────
    print("\n=== Counters and lists ===\n")
    store.increment("visits", 5)
    store.decrement("visits", 3)
    store.push("cart", "apple", "pear")
    print(f"\n  visits = {store.get('visits')}  cart = {store.get('cart')}")

    # ──────────────────────────────────────
    #  5. Denied operation
    # ──────────────────────────────────────
    print("\n=== Denied delete ===\n")
    try:
        store.remove("cart")
    except AccessDeniedError as exc:
        print(f"  [DENIED] {exc}")
    store.remove("cart", role="admin")

    # ──────────────────────────────────────
    #  6. Stats
    # ──────────────────────────────────────
    stats = store.get_stats()
    print(f"\n  keys={stats.keys} size={stats.size}B namespace={stats.namespace!r}")

    store.destroy()


if __name__ == "__main__":
    main()
