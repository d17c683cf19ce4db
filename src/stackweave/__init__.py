"""
stackweave

Dependency-aware orchestration of conditionally-created infrastructure units.

core contains shared errors
config contains the configuration model, settings and loader
orchestration contains the catalog, planner, binder and orchestrator
units contains the default unit catalog and manifest builders
cli contains the command line interface
"""

__version__ = "0.1.0"
