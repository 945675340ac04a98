"""macOS workstation bootstrapper (Python-first, stage-driven).

Core design goals:
- Idempotent stages
- Declarative manifests (config.yml / Brewfile / environment.yml)
- Keep going on partial failure, report honestly
- Centralized logging
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
