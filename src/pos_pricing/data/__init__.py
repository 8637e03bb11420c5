"""Catalog snapshot loading."""
from .catalog import CatalogRepository, get_repository

__all__ = ['CatalogRepository', 'get_repository']
