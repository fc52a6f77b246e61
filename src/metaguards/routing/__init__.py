"""Routing — the route data the guard engine consumes.

The host router owns matching; it hands the engine ``RouteState`` values
whose ``matched`` chains reuse the same ``RouteNode`` objects.
"""
