"""Pipeline engines — diffing, dependency resolution, ordering, publication."""
