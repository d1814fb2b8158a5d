"""Routing: parameter registry, pattern compiler, and dispatch pipeline.

Routes are compiled when they are registered and evaluated in
registration order on every dispatch.
"""
