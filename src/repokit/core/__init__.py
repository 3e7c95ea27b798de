"""Core building blocks: results, processes, prompts and the task orchestrator."""
