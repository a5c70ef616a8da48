"""
Resolve package: named dependencies (resolvables), their resolve policies,
and the per-path context that resolves and injects them.
"""
