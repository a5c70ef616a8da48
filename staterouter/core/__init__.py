"""
Core package: states, parameters, path nodes and the path diffing that
decides which states a transition exits, retains and enters.

Submodules are imported directly; this package re-exports nothing so that
node and resolve modules can depend on each other without import cycles.
"""
