"""Pipelines behind the API routes.

Each step takes an ``AsyncSession`` and is callable on its own, from the API
or from scripts.
"""
