"""
Job scheduler core: job definitions, execution logs and transition notifications.
"""

__version__ = "1.0.0"
