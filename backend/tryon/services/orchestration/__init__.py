"""Service orchestration layer: drives a try-on job to a single outcome.

Modules:
- state_machine: Explicit job states and pure transition functions.
- job_orchestrator: Async submit/poll loop with transparent sync fallback.
"""
