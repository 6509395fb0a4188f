"""CLI command modules.

Commands:
- validate, show, graph: manifest inspection
- rollout: parallel Helm rollout
- secrets: secret store checks
- list: services and regions
"""

from .manifests import graph, list_app, show, validate
from .rollout import rollout
from .secrets import secrets_app

__all__ = [
    "graph",
    "list_app",
    "rollout",
    "secrets_app",
    "show",
    "validate",
]
