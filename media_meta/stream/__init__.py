"""Lazy, fallible value streams and the operators evaluated over them.

Import from the submodules directly: ``errors`` is loaded by the value model
itself, so this package keeps no eager re-exports.
"""
