"""
Core Infrastructure for narration-ms.

    - config.py: Configuration loading and validation
    - errors.py: Error codes and the NarrationError hierarchy
    - logging/: Structured logging with numeric levels
    - metrics.py: Prometheus metrics collection
"""
