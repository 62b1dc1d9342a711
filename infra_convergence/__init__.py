"""Convergence engine for asynchronously provisioned infrastructure.

A mutating control-plane call returns immediately while the resource
keeps transitioning in the background.  This package blocks the caller
until the resource reaches a desired state, a known-bad state, or a
deadline, and classifies transient versus fatal conditions on the way.
"""

__version__ = "0.1.0"
