"""The `create` workflow: project context, task bodies and the task graph."""
