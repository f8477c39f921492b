"""Storefront order API backend."""
