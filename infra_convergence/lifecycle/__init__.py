"""Resource lifecycle sequencing on top of the convergence recipes.

- ScalingGroupLifecycle: capacity waits after create/update; destroy sequence
- run_concurrently: fan-out of independent waits onto a thread pool
"""
