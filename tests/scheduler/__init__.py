"""
Job Scheduler Test Suite.

- Persistence and parameter reconciliation
- Job store (create / update / remove, enabled edges)
- Execution log recorder (correlation, rollup status transitions)
- Notification policy (recipients, templates, failure isolation)
- Watcher registry
- Retention sweeper
- Job document serialization
- Configuration parsing
"""
