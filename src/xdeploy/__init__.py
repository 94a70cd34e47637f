"""
xdeploy — deterministic cross-chain deployment orchestration.

Artifacts are identified by the version string they report about themselves,
salted by (deployer, version) and deployed through a CREATE3 factory, so the
same artifact lands at the same address on every chain. Each run records the
resulting version -> address mappings in an append-style ledger.

Importing this package has no side effects: no config loading, no logging
setup.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
