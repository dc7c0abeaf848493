"""
Utility Modules for narration-ms.

    - timeit.py: Performance measurement utilities
"""
