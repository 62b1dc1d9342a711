"""Core utilities and shared infrastructure.

- config: Environment-driven timing configuration and duration parsing
- constants: Named constants, default timings, control-plane codes
- exceptions: Convergence exception hierarchy
"""
