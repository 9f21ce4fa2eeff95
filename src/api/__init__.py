"""
HTTP API for job definitions, execution logs and watchers.
"""
