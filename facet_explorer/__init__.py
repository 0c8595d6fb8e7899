"""
Top-level package for the facet explorer.

This package exposes the core architecture (domain, drivers, services).
Most code should import from submodules such as:
    facet_explorer.core
    facet_explorer.drivers
    facet_explorer.services
"""

__all__: list[str] = []
