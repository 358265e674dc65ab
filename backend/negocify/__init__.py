"""Negocify: warehouse-scoped inventory and sales API."""
