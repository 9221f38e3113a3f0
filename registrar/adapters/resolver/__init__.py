"""Resolver adapters - Name-service ownership lookups."""

from .sns_proxy import SnsProxyResolver

__all__ = ["SnsProxyResolver"]
